"""OAuth 2.0 authorization server routes.

Thin HTTP layer over ``AuthorizationEngine`` and ``TokenEngine``: it parses
requests, delegates to the engines and shapes responses. Protocol errors are
raised as ``OAuthError`` and rendered by the app's exception handler.
"""

import base64
import binascii
import time
from typing import Dict, Optional, Tuple
from urllib.parse import unquote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ValidationError

from .authorization import AuthorizationEngine
from .config import Settings
from .errors import InvalidClientError, InvalidRequestError
from .models import AuthorizationRequest, IntrospectionRequest, TokenRequest
from .tokens import TokenEngine
from ...shared.client_ip import get_real_client_ip
from ...shared.logger import log_debug, log_request, log_response

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

TOKEN_RESPONSE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


def get_external_url(request: Request, settings: Settings) -> str:
    """Get the external URL for this service.

    Uses the configured issuer when set, otherwise the X-Forwarded headers
    (set by a proxy) or the request itself.
    """
    if settings.issuer:
        return settings.issuer.rstrip("/")

    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    return f"{proto}://{host}"


def parse_basic_auth(authorization: Optional[str]) -> Optional[Tuple[str, str]]:
    """Decode an HTTP Basic ``Authorization`` header (RFC 6749 section 2.3.1).

    Returns:
        Tuple of (client_id, client_secret), or None if the header is absent
        or not Basic

    Raises:
        InvalidClientError: header is Basic but malformed
    """
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(credentials.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise InvalidClientError.unauthenticated("Malformed Basic authorization header")
    if ":" not in decoded:
        raise InvalidClientError.unauthenticated("Malformed Basic authorization header")
    client_id, client_secret = decoded.split(":", 1)
    return unquote(client_id), unquote(client_secret)


async def read_body_params(request: Request) -> Dict[str, str]:
    """Read a form-urlencoded, multipart or JSON request body as flat string params."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise InvalidRequestError("Request body is not valid JSON")
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        return {key: value for key, value in body.items() if value is not None}

    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def build_model(model: type, params: Dict[str, object]) -> BaseModel:
    try:
        return model.model_validate(params)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise InvalidRequestError(f"Malformed parameters: {fields}")


def create_oauth_router(
    settings: Settings,
    authorization_engine: AuthorizationEngine,
    token_engine: TokenEngine,
) -> APIRouter:
    """Create the OAuth router

    Args:
        settings: OAuth settings
        authorization_engine: Handles /oauth/authorize
        token_engine: Handles /oauth/token and /oauth/introspect
    """
    router = APIRouter()

    # .well-known/oauth-authorization-server endpoint (RFC 8414)
    @router.get("/.well-known/oauth-authorization-server")
    async def oauth_metadata(request: Request):
        """Authorization server metadata"""
        api_url = get_external_url(request, settings)
        return {
            "issuer": api_url,
            "authorization_endpoint": f"{api_url}/oauth/authorize",
            "token_endpoint": f"{api_url}/oauth/token",
            "introspection_endpoint": f"{api_url}/oauth/introspect",
            "response_types_supported": ["code"],
            "grant_types_supported": ["authorization_code", "refresh_token"],
            "token_endpoint_auth_methods_supported": ["client_secret_post", "client_secret_basic"],
            "introspection_endpoint_auth_methods_supported": ["none"],
            "scopes_supported": sorted({scope for client in settings.clients for scope in client.scopes}),
        }

    @router.get("/oauth/authorize")
    async def authorize(request: Request):
        """Authorization endpoint - issues a code and redirects back to the client"""
        started = time.time()
        client_ip = get_real_client_ip(request)
        auth_request = build_model(AuthorizationRequest, dict(request.query_params))

        log_request(
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
            oauth_action="authorize",
            oauth_client_id=auth_request.client_id,
            oauth_response_type=auth_request.response_type,
            oauth_scope=auth_request.scope,
        )

        result = await authorization_engine.authorize(auth_request)

        log_response(
            302,
            (time.time() - started) * 1000,
            oauth_action="authorize_redirect",
            oauth_client_id=result.client_id,
            oauth_redirect_uri=auth_request.redirect_uri,
        )

        return RedirectResponse(url=result.redirect_url, status_code=302, headers=NO_CACHE_HEADERS)

    @router.post("/oauth/token")
    async def token(request: Request):
        """Token endpoint - exchanges a code or refresh token for an access token"""
        started = time.time()
        client_ip = get_real_client_ip(request)
        params = await read_body_params(request)

        # client_secret_basic is used only when the body carries no credentials
        if "client_id" not in params and "client_secret" not in params:
            basic = parse_basic_auth(request.headers.get("authorization"))
            if basic:
                params["client_id"], params["client_secret"] = basic
                log_debug("Client credentials taken from Basic auth header", component="oauth_token")

        token_request = build_model(TokenRequest, params)

        log_request(
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
            oauth_action="token_exchange",
            oauth_client_id=token_request.client_id,
            oauth_grant_type=token_request.grant_type,
            has_code=bool(token_request.code),
            has_refresh_token=bool(token_request.refresh_token),
        )

        response = await token_engine.exchange(token_request)

        log_response(
            200,
            (time.time() - started) * 1000,
            oauth_action="token_issued",
            oauth_client_id=token_request.client_id,
            oauth_grant_type=token_request.grant_type,
            oauth_scope=response.scope,
        )

        return JSONResponse(content=response.model_dump(exclude_none=True), headers=TOKEN_RESPONSE_HEADERS)

    @router.post("/oauth/introspect")
    async def introspect(request: Request):
        """Token introspection - RFC 7662"""
        started = time.time()
        client_ip = get_real_client_ip(request)
        params = await read_body_params(request)
        introspection_request = build_model(IntrospectionRequest, params)

        log_request(
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
            oauth_action="introspect",
            oauth_token_type_hint=introspection_request.token_type_hint,
        )

        result = await token_engine.introspect(introspection_request)

        log_response(
            200,
            (time.time() - started) * 1000,
            oauth_action="introspect",
            oauth_token_active=result.active,
            oauth_token_client_id=result.client_id,
        )

        return JSONResponse(content=result.to_dict(), headers=TOKEN_RESPONSE_HEADERS)

    return router
