"""Process-level configuration for the OAuth authorization server.

OAuth protocol settings (lifetimes, clients, storage backend) live in
``oauth_server.api.oauth.config.Settings``; this module only covers how the
process itself runs.
"""

import os
from functools import lru_cache
from typing import List


class Config:
    """Configuration class with all process environment variables."""

    # Server Configuration
    SERVER_HOST: str = os.getenv('SERVER_HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '4000'))
    SERVICE_NAME: str = os.getenv('SERVICE_NAME', 'oauth-server')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT: str = os.getenv('LOG_FORMAT', 'text').lower()

    # CORS
    CORS_ORIGINS: str = os.getenv('CORS_ORIGINS', '*')

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []

        if not cls.SERVER_HOST:
            errors.append("SERVER_HOST is required")

        if not (1 <= cls.PORT <= 65535):
            errors.append(f"PORT must be between 1 and 65535, got {cls.PORT}")

        if cls.LOG_FORMAT not in ('text', 'json'):
            errors.append(f"LOG_FORMAT must be 'text' or 'json', got {cls.LOG_FORMAT}")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

    @classmethod
    def cors_origins(cls) -> List[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in cls.CORS_ORIGINS.split(',') if origin.strip()]


@lru_cache()
def get_config() -> Config:
    """Get validated configuration instance."""
    Config.validate()
    return Config()
