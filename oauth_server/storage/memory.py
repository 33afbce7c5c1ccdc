"""In-memory grant and token stores.

Each store guards its dictionaries with its own ``threading.Lock``. The lock is
never held across an ``await``, so the stores are safe both for coroutines on
one event loop and for handlers running in worker threads.
"""

import threading
from typing import Dict, Optional

from .base import (
    MAX_GENERATION_ATTEMPTS,
    Clock,
    GrantStore,
    TokenStore,
    generate_authorization_code,
    generate_token,
)
from .exceptions import GrantExpired, GrantNotFound
from .models import AccessToken, AuthorizationGrant, RefreshToken
from ..shared.logger import log_debug


def _unused_value(generate, taken: Dict[str, object]) -> str:
    # Collisions are astronomically unlikely; retry a few times anyway
    for _ in range(MAX_GENERATION_ATTEMPTS):
        value = generate()
        if value not in taken:
            return value
    raise RuntimeError("Could not generate a unique value")


class MemoryGrantStore(GrantStore):
    """Authorization codes in a lock-guarded dictionary."""

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._grants: Dict[str, AuthorizationGrant] = {}
        self._lock = threading.Lock()

    async def issue(self, client_id: str, redirect_uri: str, scope: str, ttl: int) -> str:
        with self._lock:
            code = _unused_value(generate_authorization_code, self._grants)
            self._grants[code] = AuthorizationGrant(
                code=code,
                client_id=client_id,
                redirect_uri=redirect_uri,
                scope=scope,
                expires_at=self.now() + ttl,
            )
        log_debug("Authorization code stored", component="grant_store", client_id=client_id, code=code, ttl=ttl)
        return code

    async def redeem(self, code: str) -> AuthorizationGrant:
        # Lookup and removal happen under one lock acquisition
        with self._lock:
            grant = self._grants.pop(code, None)
        if grant is None:
            raise GrantNotFound()
        if grant.is_expired(self.now()):
            raise GrantExpired()
        return grant

    async def count(self) -> int:
        now = self.now()
        with self._lock:
            return sum(1 for grant in self._grants.values() if not grant.is_expired(now))

    async def purge_expired(self) -> int:
        now = self.now()
        with self._lock:
            expired = [code for code, grant in self._grants.items() if grant.is_expired(now)]
            for code in expired:
                del self._grants[code]
        return len(expired)


class MemoryTokenStore(TokenStore):
    """Access and refresh tokens in lock-guarded dictionaries."""

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._access_tokens: Dict[str, AccessToken] = {}
        self._refresh_tokens: Dict[str, RefreshToken] = {}
        self._lock = threading.Lock()

    async def issue_access_token(self, client_id: str, scope: str, ttl: int) -> str:
        with self._lock:
            token = _unused_value(generate_token, self._access_tokens)
            self._access_tokens[token] = AccessToken(
                token=token,
                client_id=client_id,
                scope=scope,
                expires_at=self.now() + ttl,
            )
        return token

    async def issue_refresh_token(self, client_id: str, scope: str, ttl: Optional[int] = None) -> str:
        with self._lock:
            token = _unused_value(generate_token, self._refresh_tokens)
            self._refresh_tokens[token] = RefreshToken(
                token=token,
                client_id=client_id,
                scope=scope,
                expires_at=self.now() + ttl if ttl else None,
            )
        return token

    async def lookup_access_token(self, token: str) -> Optional[AccessToken]:
        with self._lock:
            record = self._access_tokens.get(token)
            if record is not None and record.is_expired(self.now()):
                # Lazy eviction
                del self._access_tokens[token]
                record = None
        return record

    async def lookup_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with self._lock:
            record = self._refresh_tokens.get(token)
            if record is not None and record.is_expired(self.now()):
                del self._refresh_tokens[token]
                record = None
        return record

    async def consume_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with self._lock:
            record = self._refresh_tokens.pop(token, None)
        if record is None or record.is_expired(self.now()):
            return None
        return record

    async def count_access_tokens(self) -> int:
        now = self.now()
        with self._lock:
            return sum(1 for record in self._access_tokens.values() if not record.is_expired(now))

    async def count_refresh_tokens(self) -> int:
        now = self.now()
        with self._lock:
            return sum(1 for record in self._refresh_tokens.values() if not record.is_expired(now))

    async def purge_expired(self) -> int:
        now = self.now()
        removed = 0
        with self._lock:
            for mapping in (self._access_tokens, self._refresh_tokens):
                expired = [token for token, record in mapping.items() if record.is_expired(now)]
                for token in expired:
                    del mapping[token]
                removed += len(expired)
        return removed
