"""FastAPI server setup for the OAuth authorization server."""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .models import HealthStatus
from .oauth.authorization import AuthorizationEngine
from .oauth.config import Settings
from .oauth.errors import OAuthError
from .oauth.routes import create_oauth_router
from .oauth.tokens import TokenEngine
from .resource.protector import BearerTokenProtector
from .resource.routes import create_resource_router
from ..shared.client_ip import get_real_client_ip
from ..shared.config import Config
from ..shared.logger import log_debug, log_error, log_info, log_warning
from ..storage import Clock, GrantStore, StorageUnavailable, TokenStore, create_stores
from ..storage.redis_client import RedisManager


async def sweep_expired(grants: GrantStore, tokens: TokenStore, interval: float):
    """Periodically drop expired codes and tokens until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            codes = await grants.purge_expired()
            purged_tokens = await tokens.purge_expired()
        except StorageUnavailable as e:
            log_warning("Expiry sweep skipped, storage unavailable", component="sweeper", error=str(e))
            continue
        except Exception as e:
            log_error("Expiry sweep failed", component="sweeper", error=e)
            continue
        if codes or purged_tokens:
            log_info("Expired entries purged", component="sweeper", codes=codes, tokens=purged_tokens)


def create_api_app(
    settings: Optional[Settings] = None,
    redis_client: Optional[redis.Redis] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: OAuth settings (read from the environment when omitted)
        redis_client: Redis client for the redis backend; a pooled client is
            created from ``settings.redis_url`` when omitted
        clock: Optional time source for the stores, mainly for tests
    """
    settings = settings or Settings()

    redis_manager = None
    if settings.storage_backend == "redis" and redis_client is None:
        redis_manager = RedisManager(settings.redis_url, settings.redis_password)
        redis_client = redis_manager.client

    registry, grant_store, token_store = create_stores(settings, redis_client, clock)
    authorization_engine = AuthorizationEngine(settings, registry, grant_store)
    token_engine = TokenEngine(settings, registry, grant_store, token_store)
    protector = BearerTokenProtector(token_engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        log_info("OAuth server starting", component="server", storage=settings.storage_backend)
        if redis_manager:
            await redis_manager.initialize()

        sweeper = None
        if settings.expiry_sweep_interval > 0:
            sweeper = asyncio.create_task(
                sweep_expired(grant_store, token_store, settings.expiry_sweep_interval)
            )
            log_debug("Expiry sweep started", component="sweeper", interval=settings.expiry_sweep_interval)

        yield

        log_info("OAuth server shutting down", component="server")
        if sweeper:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
        if redis_manager:
            await redis_manager.close()

    app = FastAPI(
        title="OAuth Authorization Server",
        description="OAuth 2.0 authorization code flow with opaque bearer tokens",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Store dependencies
    app.state.settings = settings
    app.state.client_registry = registry
    app.state.grant_store = grant_store
    app.state.token_store = token_store
    app.state.authorization_engine = authorization_engine
    app.state.token_engine = token_engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.cors_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OAuthError)
    async def oauth_error_handler(request: Request, exc: OAuthError):
        log_warning(
            "OAuth request rejected",
            component="server",
            ip=get_real_client_ip(request),
            path=request.url.path,
            error=exc.error,
            status=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers or None)

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
        log_error("Storage unavailable", component="server", error=exc, path=request.url.path)
        return JSONResponse(
            status_code=503,
            content={
                "error": "temporarily_unavailable",
                "error_description": "The server is temporarily unable to handle the request",
            },
            headers={"Retry-After": "5"},
        )

    app.include_router(create_oauth_router(settings, authorization_engine, token_engine))
    app.include_router(create_resource_router(protector))

    # Health check endpoint
    @app.get("/health", response_model=HealthStatus)
    async def health_check():
        """Health check endpoint."""
        return HealthStatus(
            status="OK",
            service=Config.SERVICE_NAME,
            timestamp=datetime.now(timezone.utc).isoformat(),
            storage=settings.storage_backend,
            active_tokens=await token_store.count_access_tokens(),
            active_codes=await grant_store.count(),
            registered_clients=registry.count(),
        )

    return app
