"""OAuth 2.0 protocol errors (RFC 6749 section 5.2, RFC 6750 section 3.1).

Engines raise these; the HTTP layer renders them as ``{error, error_description}``
JSON with the error's status code and headers. Descriptions never carry
secrets or token values.
"""

from typing import Dict, Optional


class OAuthError(Exception):
    """Base class for protocol errors returned to the client."""

    error: str = "invalid_request"
    status_code: int = 400

    def __init__(
        self,
        description: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(description or self.error)
        self.description = description
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}

    def to_dict(self) -> Dict[str, str]:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return body

    def __repr__(self) -> str:
        return f"{type(self).__name__}(error={self.error!r}, status_code={self.status_code})"


class InvalidRequestError(OAuthError):
    error = "invalid_request"


class InvalidClientError(OAuthError):
    """Unknown client or failed client authentication.

    The token endpoint answers 401 with a Basic challenge; the authorization
    endpoint answers 400.
    """

    error = "invalid_client"

    @classmethod
    def unauthenticated(cls, description: str = "Client authentication failed") -> "InvalidClientError":
        return cls(description, status_code=401, headers={"WWW-Authenticate": 'Basic realm="oauth"'})


class InvalidGrantError(OAuthError):
    error = "invalid_grant"


class UnauthorizedClientError(OAuthError):
    error = "unauthorized_client"


class UnsupportedResponseTypeError(OAuthError):
    error = "unsupported_response_type"


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"


class InvalidScopeError(OAuthError):
    error = "invalid_scope"


class InvalidTokenError(OAuthError):
    """Bearer token missing, unknown or expired at a protected resource."""

    error = "invalid_token"
    status_code = 401

    def __init__(self, description: Optional[str] = None, realm: str = "api"):
        challenge = f'Bearer realm="{realm}"'
        if description:
            challenge += f', error="{self.error}"'
        super().__init__(description, headers={"WWW-Authenticate": challenge})


class InsufficientScopeError(OAuthError):
    error = "insufficient_scope"
    status_code = 403

    def __init__(self, required_scope: str, realm: str = "api"):
        super().__init__(
            f"Token does not have the required '{required_scope}' scope",
            headers={"WWW-Authenticate": f'Bearer realm="{realm}", error="{self.error}", scope="{required_scope}"'},
        )
        self.required_scope = required_scope
