"""Configuration module for the OAuth authorization server"""

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ...storage.models import Client


def default_clients() -> List[Client]:
    """The demo client every fresh installation knows about."""
    return [
        Client(
            client_id="test-client",
            client_secret="test-secret",
            redirect_uri="http://localhost:3001/callback",
            scopes=frozenset({"read", "write"}),
        )
    ]


class Settings(BaseSettings):
    """OAuth protocol settings, read from OAUTH_* environment variables or .env"""

    # Lifetimes in seconds
    access_token_lifetime: int = Field(default=3600, gt=0)
    authorization_code_lifetime: int = Field(default=600, gt=0)
    refresh_token_lifetime: int = Field(default=0, ge=0)  # 0 = never expires

    # Scope applied when /authorize is called without one
    default_scope: str = "read"

    # Hardening switches, off by default
    rotate_refresh_tokens: bool = False
    enforce_client_scopes: bool = False

    # Storage
    storage_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_password: Optional[str] = None
    expiry_sweep_interval: int = Field(default=0, ge=0)  # 0 = no background sweep

    # Advertised in /.well-known/oauth-authorization-server; derived from the request if unset
    issuer: Optional[str] = None

    # OAUTH_CLIENTS='[{"client_id": "...", "client_secret": "...", "redirect_uri": "...", "scopes": "read write"}]'
    clients: List[Client] = Field(default_factory=default_clients)

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_",
        env_file=".env",
        extra="ignore",  # Allow extra fields from environment
    )
