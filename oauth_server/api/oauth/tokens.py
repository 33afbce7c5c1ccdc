"""Token endpoint and introspection logic.

Handles the authorization_code and refresh_token grants (RFC 6749 sections
4.1.3 and 6) and access token introspection (RFC 7662).
"""

from typing import Optional

from .config import Settings
from .errors import (
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    UnauthorizedClientError,
    UnsupportedGrantTypeError,
)
from .models import IntrospectionRequest, IntrospectionResponse, TokenRequest, TokenResponse
from ...shared.logger import log_debug, log_info, log_warning
from ...storage import ClientRegistry, GrantExpired, GrantNotFound, GrantStore, TokenStore
from ...storage.models import Client

SUPPORTED_GRANT_TYPES = ("authorization_code", "refresh_token")


class TokenEngine:
    """Exchanges grants for tokens and answers introspection queries."""

    def __init__(
        self,
        settings: Settings,
        clients: ClientRegistry,
        grants: GrantStore,
        tokens: TokenStore,
    ):
        self.settings = settings
        self.clients = clients
        self.grants = grants
        self.tokens = tokens

    @property
    def refresh_token_ttl(self) -> Optional[int]:
        return self.settings.refresh_token_lifetime or None

    def authenticate_client(self, request: TokenRequest) -> Client:
        """Check the common prefix of every token request.

        Client authentication runs before grant type dispatch, so a bad
        secret is reported as invalid_client whatever the rest of the body says.
        """
        if not request.grant_type or not request.client_id:
            raise InvalidRequestError("Missing required parameters")

        if not self.clients.validate_credentials(request.client_id, request.client_secret):
            log_warning(
                "OAuth client authentication failed",
                component="oauth_token",
                client_id=request.client_id,
                grant_type=request.grant_type,
            )
            raise InvalidClientError.unauthenticated()

        client = self.clients.lookup(request.client_id)

        if request.grant_type not in SUPPORTED_GRANT_TYPES:
            raise UnsupportedGrantTypeError(f"Grant type '{request.grant_type}' is not supported")
        if not client.check_grant_type(request.grant_type):
            raise UnauthorizedClientError(f"Client is not allowed to use the '{request.grant_type}' grant")

        return client

    async def exchange(self, request: TokenRequest) -> TokenResponse:
        """Process a token request.

        Raises:
            OAuthError subclass when the request is rejected
            StorageUnavailable when the backing store cannot be reached
        """
        client = self.authenticate_client(request)

        if request.grant_type == "authorization_code":
            return await self._exchange_authorization_code(client, request)
        return await self._exchange_refresh_token(client, request)

    async def _exchange_authorization_code(self, client: Client, request: TokenRequest) -> TokenResponse:
        if not request.code:
            raise InvalidGrantError("Invalid authorization code")

        # Redeeming first means a code presented with a wrong redirect_uri is burnt too
        try:
            grant = await self.grants.redeem(request.code)
        except GrantExpired:
            log_warning("Expired authorization code presented", component="oauth_token", client_id=client.client_id)
            raise InvalidGrantError("Authorization code has expired")
        except GrantNotFound:
            log_warning("Unknown authorization code presented", component="oauth_token", client_id=client.client_id)
            raise InvalidGrantError("Invalid authorization code")

        if request.redirect_uri != grant.redirect_uri:
            log_warning(
                "Redirect URI mismatch on code exchange",
                component="oauth_token",
                client_id=client.client_id,
                redirect_uri=request.redirect_uri,
            )
            raise InvalidGrantError("Redirect URI does not match the authorization request")

        if grant.client_id != client.client_id:
            log_warning(
                "Authorization code presented by another client",
                component="oauth_token",
                client_id=client.client_id,
                grant_client_id=grant.client_id,
            )
            raise InvalidGrantError("Authorization code was not issued to this client")

        access_token = await self.tokens.issue_access_token(
            client.client_id, grant.scope, self.settings.access_token_lifetime
        )
        refresh_token = await self.tokens.issue_refresh_token(client.client_id, grant.scope, self.refresh_token_ttl)

        log_info(
            "OAuth tokens issued",
            component="oauth_token",
            grant_type="authorization_code",
            client_id=client.client_id,
            scope=grant.scope,
            access_token=access_token,
        )

        return TokenResponse(
            access_token=access_token,
            expires_in=self.settings.access_token_lifetime,
            refresh_token=refresh_token,
            scope=grant.scope,
        )

    async def _exchange_refresh_token(self, client: Client, request: TokenRequest) -> TokenResponse:
        if not request.refresh_token:
            raise InvalidGrantError("Invalid refresh token")

        rotate = self.settings.rotate_refresh_tokens
        if rotate:
            stored = await self.tokens.lookup_refresh_token(request.refresh_token)
            if stored is not None and stored.client_id == client.client_id:
                stored = await self.tokens.consume_refresh_token(request.refresh_token)
        else:
            stored = await self.tokens.lookup_refresh_token(request.refresh_token)

        if stored is None:
            log_warning("Unknown refresh token presented", component="oauth_token", client_id=client.client_id)
            raise InvalidGrantError("Invalid refresh token")

        if stored.client_id != client.client_id:
            log_warning(
                "Refresh token presented by another client",
                component="oauth_token",
                client_id=client.client_id,
                token_client_id=stored.client_id,
            )
            raise InvalidGrantError("Invalid refresh token")

        access_token = await self.tokens.issue_access_token(
            stored.client_id, stored.scope, self.settings.access_token_lifetime
        )
        new_refresh_token = None
        if rotate:
            new_refresh_token = await self.tokens.issue_refresh_token(
                stored.client_id, stored.scope, self.refresh_token_ttl
            )

        log_info(
            "OAuth access token refreshed",
            component="oauth_token",
            grant_type="refresh_token",
            client_id=client.client_id,
            scope=stored.scope,
            rotated=rotate,
            access_token=access_token,
        )

        return TokenResponse(
            access_token=access_token,
            expires_in=self.settings.access_token_lifetime,
            refresh_token=new_refresh_token,
            scope=stored.scope,
        )

    async def introspect(self, request: IntrospectionRequest) -> IntrospectionResponse:
        """Report whether an access token is active (RFC 7662).

        Unknown and expired tokens are indistinguishable in the answer.
        """
        if not request.token:
            raise InvalidRequestError("Missing token parameter")

        stored = await self.tokens.lookup_access_token(request.token)
        if stored is None:
            log_debug("Introspected inactive token", component="oauth_introspect", token=request.token)
            return IntrospectionResponse(active=False)

        log_debug(
            "Introspected active token",
            component="oauth_introspect",
            client_id=stored.client_id,
            token=request.token,
        )
        return IntrospectionResponse(
            active=True,
            client_id=stored.client_id,
            scope=stored.scope,
            exp=stored.exp,
        )
