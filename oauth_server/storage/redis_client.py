"""Redis connection management for OAuth grant and token storage"""

from typing import Optional

import redis.asyncio as redis

from ..shared.logger import log_info
from ..shared.sanitizer import OAuthSanitizer


class RedisManager:
    """Manages the Redis connection pool

    The client is created on first access; ``redis.from_url`` opens no
    connection until a command runs, so stores can be wired up before the
    event loop starts and ``initialize`` verifies connectivity at startup.
    """

    def __init__(self, redis_url: str, redis_password: Optional[str] = None):
        self.redis_url = redis_url
        self.redis_password = redis_password
        self._pool: Optional[redis.Redis] = None

    async def initialize(self):
        """Verify the Redis server answers"""
        await self.client.ping()
        log_info(
            "Redis connection established",
            component="oauth_redis",
            redis_url=OAuthSanitizer.sanitize_url(self.redis_url),
        )

    async def close(self):
        """Close Redis connection pool"""
        if self._pool:
            await self._pool.aclose()
            self._pool = None
            log_info("Redis connection closed", component="oauth_redis")

    @property
    def client(self) -> redis.Redis:
        """Get Redis client from pool"""
        if self._pool is None:
            self._pool = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                password=self.redis_password,
            )
        return self._pool
