"""Authorization endpoint logic (RFC 6749 section 4.1.1).

A request moves Received -> Validated -> Issued, or stops at the first failed
check with no side effect. User consent is not modeled: a valid request is
treated as approved.
"""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import Settings
from .errors import (
    InvalidClientError,
    InvalidRequestError,
    InvalidScopeError,
    UnsupportedResponseTypeError,
)
from .models import AuthorizationRequest, AuthorizationResult
from ...shared.logger import log_info, log_warning
from ...storage import ClientRegistry, GrantStore


def append_query(url: str, params: dict) -> str:
    """Add query parameters to ``url`` while keeping the ones it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, value) for key, value in params.items() if value is not None)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class AuthorizationEngine:
    """Validates authorization requests and issues authorization codes."""

    def __init__(self, settings: Settings, clients: ClientRegistry, grants: GrantStore):
        self.settings = settings
        self.clients = clients
        self.grants = grants

    def validate(self, request: AuthorizationRequest):
        """Run the authorization request checks in order; first failure wins.

        Returns:
            The registered client

        Raises:
            OAuthError subclass describing the first failed check
        """
        if not request.client_id or not request.redirect_uri or not request.response_type:
            raise InvalidRequestError("Missing required parameters")

        client = self.clients.lookup(request.client_id)
        if client is None:
            raise InvalidClientError("Unknown client")

        if not client.check_redirect_uri(request.redirect_uri):
            raise InvalidRequestError("Invalid redirect URI")

        if request.response_type != "code" or not client.check_response_type(request.response_type):
            raise UnsupportedResponseTypeError("Only the 'code' response type is supported")

        if self.settings.enforce_client_scopes and request.scope and not client.allows_scope(request.scope):
            raise InvalidScopeError("Requested scope exceeds the scope registered for this client")

        return client

    async def authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        """Validate the request and issue an authorization code.

        Raises:
            OAuthError subclass when the request is rejected
        """
        try:
            client = self.validate(request)
        except Exception as e:
            log_warning(
                "OAuth authorization rejected",
                component="oauth_authorize",
                client_id=request.client_id,
                redirect_uri=request.redirect_uri,
                response_type=request.response_type,
                rejection_reason=getattr(e, "error", type(e).__name__),
            )
            raise

        scope = request.scope or self.settings.default_scope
        code = await self.grants.issue(
            client.client_id,
            request.redirect_uri,
            scope,
            self.settings.authorization_code_lifetime,
        )

        redirect_url = append_query(request.redirect_uri, {"code": code, "state": request.state})

        log_info(
            "OAuth authorization code issued",
            component="oauth_authorize",
            client_id=client.client_id,
            scope=scope,
            has_state=request.state is not None,
            code=code,
        )

        return AuthorizationResult(
            code=code,
            redirect_url=redirect_url,
            client_id=client.client_id,
            scope=scope,
            state=request.state,
        )
