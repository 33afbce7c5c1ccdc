"""Request and response models for the OAuth endpoints.

Request fields are all optional at the model level: presence checks belong to
the engines so that a missing parameter maps to the right OAuth error code
rather than a generic validation failure.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthorizationRequest(BaseModel):
    """Query parameters of GET /oauth/authorize"""

    model_config = ConfigDict(extra="ignore")

    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    response_type: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None


class AuthorizationResult(BaseModel):
    """Outcome of a successful authorization request"""

    code: str
    redirect_url: str
    client_id: str
    scope: str
    state: Optional[str] = None


class TokenRequest(BaseModel):
    """Body of POST /oauth/token"""

    model_config = ConfigDict(extra="ignore")

    grant_type: Optional[str] = None
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    """RFC 6749 section 5.1 access token response"""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: Optional[str] = None
    scope: str


class IntrospectionRequest(BaseModel):
    """Body of POST /oauth/introspect"""

    model_config = ConfigDict(extra="ignore")

    token: Optional[str] = None
    token_type_hint: Optional[str] = None


class IntrospectionResponse(BaseModel):
    """RFC 7662 introspection response.

    An inactive token serializes to exactly ``{"active": false}``.
    """

    active: bool
    client_id: Optional[str] = None
    scope: Optional[str] = None
    exp: Optional[int] = None

    def to_dict(self) -> dict:
        if not self.active:
            return {"active": False}
        return self.model_dump(exclude_none=True)
