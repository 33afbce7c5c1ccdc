"""Store interfaces the OAuth engines depend on.

The engines only ever talk to ``GrantStore`` and ``TokenStore``; the in-memory
and Redis implementations live in ``memory.py`` and ``redis_storage.py``.
Every read path checks ``expires_at`` itself, so expired entries are logically
absent whether or not ``purge_expired`` ever runs.
"""

import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .models import AccessToken, AuthorizationGrant, RefreshToken

Clock = Callable[[], float]

# 16 random bytes -> 32 hex characters
AUTHORIZATION_CODE_BYTES = 16
# 32 random bytes -> 64 hex characters
TOKEN_BYTES = 32

# Bound on regeneration attempts when a freshly generated value is already taken
MAX_GENERATION_ATTEMPTS = 5


def generate_authorization_code() -> str:
    return secrets.token_hex(AUTHORIZATION_CODE_BYTES)


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


class ClockedStore:
    """Mixin giving a store an injectable time source (epoch seconds)."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or time.time

    def now(self) -> float:
        return self._clock()


class GrantStore(ClockedStore, ABC):
    """Lifecycle of authorization codes: issue, redeem once, expire."""

    @abstractmethod
    async def issue(self, client_id: str, redirect_uri: str, scope: str, ttl: int) -> str:
        """Record a new grant valid for ``ttl`` seconds and return its code."""

    @abstractmethod
    async def redeem(self, code: str) -> AuthorizationGrant:
        """Atomically look up and remove a grant.

        Raises:
            GrantNotFound: unknown or already redeemed code
            GrantExpired: the grant outlived its lifetime (it is removed anyway)
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of live (unexpired) codes."""

    @abstractmethod
    async def purge_expired(self) -> int:
        """Drop expired codes and return how many were removed."""


class TokenStore(ClockedStore, ABC):
    """Issuance, lookup and expiry of access and refresh tokens."""

    @abstractmethod
    async def issue_access_token(self, client_id: str, scope: str, ttl: int) -> str:
        """Record a new access token valid for ``ttl`` seconds and return it."""

    @abstractmethod
    async def issue_refresh_token(self, client_id: str, scope: str, ttl: Optional[int] = None) -> str:
        """Record a new refresh token (no expiry unless ``ttl`` is given)."""

    @abstractmethod
    async def lookup_access_token(self, token: str) -> Optional[AccessToken]:
        """Return the access token, or None if unknown or expired."""

    @abstractmethod
    async def lookup_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """Return the refresh token, or None if unknown or expired."""

    @abstractmethod
    async def consume_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """Atomically look up and remove a refresh token (used for rotation)."""

    @abstractmethod
    async def count_access_tokens(self) -> int:
        """Number of live access tokens."""

    @abstractmethod
    async def count_refresh_tokens(self) -> int:
        """Number of live refresh tokens."""

    @abstractmethod
    async def purge_expired(self) -> int:
        """Drop expired tokens and return how many were removed."""

    async def is_access_token_valid(self, token: str) -> bool:
        return await self.lookup_access_token(token) is not None
