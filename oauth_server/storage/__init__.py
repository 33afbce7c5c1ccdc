"""Storage layer for clients, authorization codes and tokens.

``create_stores`` picks the grant/token backend from the OAuth settings; the
client registry is always in memory.
"""

from typing import TYPE_CHECKING, Optional, Tuple

from .base import Clock, GrantStore, TokenStore
from .client_registry import ClientRegistry
from .exceptions import DuplicateClient, GrantExpired, GrantNotFound, StorageError, StorageUnavailable
from .memory import MemoryGrantStore, MemoryTokenStore
from .models import AccessToken, AuthorizationGrant, Client, RefreshToken
from .redis_storage import RedisGrantStore, RedisTokenStore
from ..shared.logger import log_info

if TYPE_CHECKING:
    import redis.asyncio as redis

    from ..api.oauth.config import Settings


def create_stores(
    settings: "Settings",
    redis_client: Optional["redis.Redis"] = None,
    clock: Optional[Clock] = None,
) -> Tuple[ClientRegistry, GrantStore, TokenStore]:
    """Build the client registry and the configured grant/token stores.

    Args:
        settings: OAuth settings
        redis_client: Connected Redis client, required for the redis backend
        clock: Optional time source (epoch seconds), mainly for tests

    Returns:
        Tuple of (client_registry, grant_store, token_store)
    """
    registry = ClientRegistry(settings.clients)

    if settings.storage_backend == "redis":
        if redis_client is None:
            raise ValueError("storage_backend 'redis' requires a Redis client")
        grant_store: GrantStore = RedisGrantStore(redis_client, clock)
        token_store: TokenStore = RedisTokenStore(redis_client, clock)
    else:
        grant_store = MemoryGrantStore(clock)
        token_store = MemoryTokenStore(clock)

    log_info(
        "OAuth stores created",
        component="storage",
        backend=settings.storage_backend,
        clients=registry.count(),
    )
    return registry, grant_store, token_store


__all__ = [
    'AccessToken', 'AuthorizationGrant', 'Client', 'ClientRegistry', 'Clock',
    'DuplicateClient', 'GrantExpired', 'GrantNotFound', 'GrantStore',
    'MemoryGrantStore', 'MemoryTokenStore', 'RedisGrantStore', 'RedisTokenStore',
    'RefreshToken', 'StorageError', 'StorageUnavailable', 'TokenStore', 'create_stores',
]
