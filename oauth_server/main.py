"""Main entry point for the OAuth authorization server."""

import asyncio
import sys

from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

from .api.oauth.config import Settings
from .api.server import create_api_app
from .shared.config import Config, get_config
from .shared.logger import log_error, log_info
from .shared.python_logger_config import setup_python_logging


async def run_server(config: Config, settings: Settings) -> None:
    """Serve the API with Hypercorn until interrupted."""
    app = create_api_app(settings)

    server_config = HypercornConfig()
    server_config.bind = [f"{config.SERVER_HOST}:{config.PORT}"]
    server_config.loglevel = config.LOG_LEVEL
    # Requests are logged by the routes themselves
    server_config.accesslog = None

    log_info(
        "OAuth server listening",
        component="main",
        bind=server_config.bind[0],
        storage=settings.storage_backend,
        clients=len(settings.clients),
    )
    await serve(app, server_config)


def main() -> None:
    """Main entry point for CLI execution.

    Used by `python run.py`, `python -m oauth_server.main` and the
    `oauth-server` console script.
    """
    try:
        config = get_config()
        setup_python_logging(log_level=config.LOG_LEVEL, log_format=config.LOG_FORMAT)
        settings = Settings()

        log_info("Starting OAuth authorization server", component="main", port=config.PORT)
        asyncio.run(run_server(config, settings))

    except KeyboardInterrupt:
        log_info("Shutting down OAuth authorization server (interrupted)", component="main")
        sys.exit(0)
    except Exception as e:
        log_error(f"Failed to start OAuth authorization server: {e}", component="main", error=e)
        print(f"ERROR: Failed to start OAuth authorization server: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
