"""Redis-backed grant and token stores.

Key layout:
    oauth:code:{code}       AuthorizationGrant JSON, key TTL = code lifetime
    oauth:token:{token}     AccessToken JSON, key TTL = access token lifetime
    oauth:refresh:{token}   RefreshToken JSON, key TTL only if it has a lifetime

Key TTLs let Redis reclaim memory on its own; correctness still rests on the
``expires_at`` check done on every read. Single-use redemption relies on
``GETDEL`` being atomic on the server.
"""

import math
from contextlib import contextmanager
from typing import AsyncIterator, Optional, Type, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel
from redis.exceptions import RedisError

from .base import (
    MAX_GENERATION_ATTEMPTS,
    Clock,
    GrantStore,
    TokenStore,
    generate_authorization_code,
    generate_token,
)
from .exceptions import GrantExpired, GrantNotFound, StorageUnavailable
from .models import AccessToken, AuthorizationGrant, RefreshToken
from ..shared.logger import log_debug, log_error

CODE_PREFIX = "oauth:code:"
TOKEN_PREFIX = "oauth:token:"
REFRESH_PREFIX = "oauth:refresh:"

ModelT = TypeVar("ModelT", bound=BaseModel)


@contextmanager
def redis_errors(operation: str):
    """Re-raise Redis failures as ``StorageUnavailable``."""
    try:
        yield
    except RedisError as e:
        log_error(f"Redis failure during {operation}", component="redis_storage", error=e)
        raise StorageUnavailable(f"Storage unavailable during {operation}") from e


def _key_ttl(ttl: float) -> int:
    return max(1, int(math.ceil(ttl)))


class RedisStoreBase:
    """Helpers shared by the Redis stores."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def _store_new(self, prefix: str, generate, build, ttl: Optional[float]) -> str:
        """Store ``build(value)`` under a freshly generated, unused key."""
        for _ in range(MAX_GENERATION_ATTEMPTS):
            value = generate()
            record = build(value)
            stored = await self.redis.set(
                f"{prefix}{value}",
                record.model_dump_json(),
                ex=_key_ttl(ttl) if ttl else None,
                nx=True,
            )
            if stored:
                return value
        raise RuntimeError("Could not generate a unique value")

    async def _iter_records(self, prefix: str, model: Type[ModelT]) -> AsyncIterator[tuple]:
        async for key in self.redis.scan_iter(match=f"{prefix}*"):
            raw = await self.redis.get(key)
            if raw is not None:
                yield key, model.model_validate_json(raw)


class RedisGrantStore(RedisStoreBase, GrantStore):
    """Authorization codes stored in Redis."""

    def __init__(self, redis_client: redis.Redis, clock: Optional[Clock] = None):
        RedisStoreBase.__init__(self, redis_client)
        GrantStore.__init__(self, clock)

    async def issue(self, client_id: str, redirect_uri: str, scope: str, ttl: int) -> str:
        expires_at = self.now() + ttl

        def build(code: str) -> AuthorizationGrant:
            return AuthorizationGrant(
                code=code,
                client_id=client_id,
                redirect_uri=redirect_uri,
                scope=scope,
                expires_at=expires_at,
            )

        with redis_errors("authorization code issue"):
            code = await self._store_new(CODE_PREFIX, generate_authorization_code, build, ttl)
        log_debug("Authorization code stored", component="grant_store", client_id=client_id, code=code, ttl=ttl)
        return code

    async def redeem(self, code: str) -> AuthorizationGrant:
        with redis_errors("authorization code redeem"):
            raw = await self.redis.getdel(f"{CODE_PREFIX}{code}")
        if raw is None:
            raise GrantNotFound()
        grant = AuthorizationGrant.model_validate_json(raw)
        if grant.is_expired(self.now()):
            raise GrantExpired()
        return grant

    async def count(self) -> int:
        now = self.now()
        live = 0
        with redis_errors("authorization code count"):
            async for _, grant in self._iter_records(CODE_PREFIX, AuthorizationGrant):
                if not grant.is_expired(now):
                    live += 1
        return live

    async def purge_expired(self) -> int:
        now = self.now()
        removed = 0
        with redis_errors("authorization code purge"):
            async for key, grant in self._iter_records(CODE_PREFIX, AuthorizationGrant):
                if grant.is_expired(now):
                    removed += await self.redis.delete(key)
        return removed


class RedisTokenStore(RedisStoreBase, TokenStore):
    """Access and refresh tokens stored in Redis."""

    def __init__(self, redis_client: redis.Redis, clock: Optional[Clock] = None):
        RedisStoreBase.__init__(self, redis_client)
        TokenStore.__init__(self, clock)

    async def issue_access_token(self, client_id: str, scope: str, ttl: int) -> str:
        expires_at = self.now() + ttl

        def build(token: str) -> AccessToken:
            return AccessToken(token=token, client_id=client_id, scope=scope, expires_at=expires_at)

        with redis_errors("access token issue"):
            return await self._store_new(TOKEN_PREFIX, generate_token, build, ttl)

    async def issue_refresh_token(self, client_id: str, scope: str, ttl: Optional[int] = None) -> str:
        expires_at = self.now() + ttl if ttl else None

        def build(token: str) -> RefreshToken:
            return RefreshToken(token=token, client_id=client_id, scope=scope, expires_at=expires_at)

        with redis_errors("refresh token issue"):
            return await self._store_new(REFRESH_PREFIX, generate_token, build, ttl)

    async def _lookup(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        with redis_errors("token lookup"):
            raw = await self.redis.get(key)
            if raw is None:
                return None
            record = model.model_validate_json(raw)
            if record.is_expired(self.now()):
                await self.redis.delete(key)
                return None
        return record

    async def lookup_access_token(self, token: str) -> Optional[AccessToken]:
        return await self._lookup(f"{TOKEN_PREFIX}{token}", AccessToken)

    async def lookup_refresh_token(self, token: str) -> Optional[RefreshToken]:
        return await self._lookup(f"{REFRESH_PREFIX}{token}", RefreshToken)

    async def consume_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with redis_errors("refresh token consume"):
            raw = await self.redis.getdel(f"{REFRESH_PREFIX}{token}")
        if raw is None:
            return None
        record = RefreshToken.model_validate_json(raw)
        if record.is_expired(self.now()):
            return None
        return record

    async def _count(self, prefix: str, model: Type[ModelT]) -> int:
        now = self.now()
        live = 0
        with redis_errors("token count"):
            async for _, record in self._iter_records(prefix, model):
                if not record.is_expired(now):
                    live += 1
        return live

    async def count_access_tokens(self) -> int:
        return await self._count(TOKEN_PREFIX, AccessToken)

    async def count_refresh_tokens(self) -> int:
        return await self._count(REFRESH_PREFIX, RefreshToken)

    async def purge_expired(self) -> int:
        now = self.now()
        removed = 0
        with redis_errors("token purge"):
            for prefix, model in ((TOKEN_PREFIX, AccessToken), (REFRESH_PREFIX, RefreshToken)):
                async for key, record in self._iter_records(prefix, model):
                    if record.is_expired(now):
                        removed += await self.redis.delete(key)
        return removed
