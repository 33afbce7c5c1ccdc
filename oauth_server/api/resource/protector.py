"""Bearer token protection for resource endpoints (RFC 6750).

Tokens are resolved through ``TokenEngine.introspect`` in process, so a
resource endpoint sees exactly what /oauth/introspect would report.
"""

from typing import Callable, Optional

from fastapi import Request

from ..oauth.errors import InsufficientScopeError, InvalidTokenError
from ..oauth.models import IntrospectionRequest, IntrospectionResponse
from ..oauth.tokens import TokenEngine
from ...shared.client_ip import get_real_client_ip
from ...shared.logger import log_debug, log_warning
from ...storage.models import split_scope


class BearerTokenProtector:
    """Validates ``Authorization: Bearer`` headers and required scopes."""

    def __init__(self, token_engine: TokenEngine, realm: str = "api"):
        self.token_engine = token_engine
        self.realm = realm

    @staticmethod
    def extract_token(authorization: Optional[str]) -> Optional[str]:
        if not authorization:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    async def validate_request(self, request: Request, scope: Optional[str] = None) -> IntrospectionResponse:
        """Validate the bearer token of a request.

        Args:
            request: FastAPI Request object
            scope: Scope token the endpoint requires, if any

        Returns:
            Introspection result of the active token

        Raises:
            InvalidTokenError: header missing, not Bearer, or token inactive
            InsufficientScopeError: token lacks the required scope
        """
        client_ip = get_real_client_ip(request)
        token = self.extract_token(request.headers.get("authorization"))
        if token is None:
            log_debug("Resource request without bearer token", component="resource", ip=client_ip,
                      path=request.url.path)
            raise InvalidTokenError(realm=self.realm)

        info = await self.token_engine.introspect(IntrospectionRequest(token=token, token_type_hint="access_token"))
        if not info.active:
            log_warning("Resource request with inactive token", component="resource", ip=client_ip,
                        path=request.url.path, token=token)
            raise InvalidTokenError("Invalid or expired access token", realm=self.realm)

        if scope and scope not in split_scope(info.scope):
            log_warning("Resource request with insufficient scope", component="resource", ip=client_ip,
                        path=request.url.path, client_id=info.client_id, required_scope=scope,
                        token_scope=info.scope)
            raise InsufficientScopeError(scope, realm=self.realm)

        return info

    def require(self, scope: Optional[str] = None) -> Callable:
        """FastAPI dependency that enforces a valid token and optional scope."""

        async def dependency(request: Request) -> IntrospectionResponse:
            return await self.validate_request(request, scope)

        return dependency
