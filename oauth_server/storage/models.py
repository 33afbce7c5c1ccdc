"""Entities owned by the OAuth stores.

All entities are frozen pydantic models: a store hands out values, never a
handle that a caller could mutate behind the store's back.
"""

import secrets
from typing import FrozenSet, Optional, Tuple

from authlib.oauth2.rfc6749 import ClientMixin
from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_CLIENT_SCOPES = frozenset({"read"})


def split_scope(scope: Optional[str]) -> FrozenSet[str]:
    """Split a space-delimited scope string into its tokens."""
    if not scope:
        return frozenset()
    return frozenset(scope.split())


class Client(BaseModel, ClientMixin):
    """Registered OAuth client.

    Implements Authlib's ``ClientMixin`` so the client can be handed to Authlib
    helpers; redirect URIs are matched exactly against the single registered URI.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: FrozenSet[str] = DEFAULT_CLIENT_SCOPES
    response_types: Tuple[str, ...] = ("code",)
    grant_types: Tuple[str, ...] = ("authorization_code", "refresh_token")

    @field_validator("scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, value):
        # Configuration may give scopes as "read write"
        if isinstance(value, str):
            return split_scope(value)
        return value

    def get_client_id(self) -> str:
        return self.client_id

    def get_default_redirect_uri(self) -> str:
        return self.redirect_uri

    def get_allowed_scope(self, scope: str) -> str:
        if not scope:
            return ""
        return " ".join(s for s in scope.split() if s in self.scopes)

    def allows_scope(self, scope: str) -> bool:
        """True if every token of ``scope`` is registered for this client."""
        return split_scope(self.get_allowed_scope(scope)) == split_scope(scope)

    def check_redirect_uri(self, redirect_uri: str) -> bool:
        return redirect_uri == self.redirect_uri

    def has_client_secret(self) -> bool:
        return bool(self.client_secret)

    def check_client_secret(self, client_secret: str) -> bool:
        if client_secret is None:
            return False
        return secrets.compare_digest(self.client_secret.encode(), client_secret.encode())

    def check_endpoint_auth_method(self, method: str, endpoint: str) -> bool:
        return method in ("client_secret_post", "client_secret_basic")

    def check_response_type(self, response_type: str) -> bool:
        return response_type in self.response_types

    def check_grant_type(self, grant_type: str) -> bool:
        return grant_type in self.grant_types


class AuthorizationGrant(BaseModel):
    """Short-lived, single-use authorization code."""

    model_config = ConfigDict(frozen=True)

    code: str
    client_id: str
    redirect_uri: str
    scope: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class AccessToken(BaseModel):
    """Opaque bearer access token."""

    model_config = ConfigDict(frozen=True)

    token: str
    client_id: str
    scope: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    @property
    def exp(self) -> int:
        """Expiry as epoch seconds."""
        return int(self.expires_at)


class RefreshToken(BaseModel):
    """Refresh token; never expires unless issued with a lifetime."""

    model_config = ConfigDict(frozen=True)

    token: str
    client_id: str
    scope: str
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at
