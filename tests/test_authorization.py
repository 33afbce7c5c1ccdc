"""Authorization engine tests."""

from urllib.parse import parse_qs, urlparse

import pytest

from oauth_server.api.oauth.authorization import AuthorizationEngine, append_query
from oauth_server.api.oauth.errors import (
    InvalidClientError,
    InvalidRequestError,
    InvalidScopeError,
    UnsupportedResponseTypeError,
)
from oauth_server.api.oauth.models import AuthorizationRequest
from oauth_server.storage import create_stores

REDIRECT_URI = "http://localhost:3001/callback"


def make_request(**overrides) -> AuthorizationRequest:
    params = {
        "client_id": "test-client",
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": "read write",
        "state": "xyz",
    }
    params.update(overrides)
    return AuthorizationRequest(**params)


@pytest.mark.oauth
class TestAuthorize:
    """Test successful authorization requests."""

    async def test_issues_code_and_redirects(self, authorization_engine, grant_store):
        result = await authorization_engine.authorize(make_request())

        parsed = urlparse(result.redirect_url)
        query = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == REDIRECT_URI
        assert query["code"] == [result.code]
        assert query["state"] == ["xyz"]
        assert result.scope == "read write"
        assert await grant_store.count() == 1

    async def test_state_omitted_when_absent(self, authorization_engine):
        result = await authorization_engine.authorize(make_request(state=None))
        assert "state" not in parse_qs(urlparse(result.redirect_url).query)

    async def test_default_scope(self, authorization_engine, grant_store):
        result = await authorization_engine.authorize(make_request(scope=None))
        assert result.scope == "read"
        grant = await grant_store.redeem(result.code)
        assert grant.scope == "read"

    async def test_scope_not_checked_by_default(self, authorization_engine):
        result = await authorization_engine.authorize(make_request(scope="admin"))
        assert result.scope == "admin"

    def test_append_query_keeps_existing_parameters(self):
        url = append_query("http://localhost:3001/callback?tenant=a", {"code": "abc", "state": None})
        assert url == "http://localhost:3001/callback?tenant=a&code=abc"

    def test_append_query_encodes_state(self):
        url = append_query(REDIRECT_URI, {"code": "abc", "state": "a b&c"})
        assert parse_qs(urlparse(url).query)["state"] == ["a b&c"]


@pytest.mark.oauth
class TestAuthorizeRejections:
    """Each failed check maps to its error code and issues nothing."""

    @pytest.mark.parametrize("missing", ["client_id", "redirect_uri", "response_type"])
    async def test_missing_parameter(self, authorization_engine, grant_store, missing):
        with pytest.raises(InvalidRequestError):
            await authorization_engine.authorize(make_request(**{missing: None}))
        assert await grant_store.count() == 0

    async def test_unknown_client(self, authorization_engine, grant_store):
        with pytest.raises(InvalidClientError) as exc_info:
            await authorization_engine.authorize(make_request(client_id="unknown"))
        assert exc_info.value.status_code == 400
        assert await grant_store.count() == 0

    async def test_redirect_mismatch(self, authorization_engine, grant_store):
        with pytest.raises(InvalidRequestError):
            await authorization_engine.authorize(make_request(redirect_uri="http://evil.example/callback"))
        assert await grant_store.count() == 0

    async def test_unsupported_response_type(self, authorization_engine):
        with pytest.raises(UnsupportedResponseTypeError):
            await authorization_engine.authorize(make_request(response_type="token"))

    async def test_first_failure_wins(self, authorization_engine):
        """An unknown client is reported before a bad redirect or response type."""
        request = make_request(client_id="unknown", redirect_uri="http://evil.example", response_type="token")
        with pytest.raises(InvalidClientError):
            await authorization_engine.authorize(request)

    async def test_redirect_checked_before_response_type(self, authorization_engine):
        request = make_request(redirect_uri="http://evil.example", response_type="token")
        with pytest.raises(InvalidRequestError):
            await authorization_engine.authorize(request)


@pytest.mark.oauth
class TestClientScopeEnforcement:
    """Requested scopes are limited to the client's scopes when enabled."""

    @pytest.fixture
    def strict_engine(self, settings, clock):
        strict = settings.model_copy(update={"enforce_client_scopes": True})
        registry, grants, _ = create_stores(strict, clock=clock)
        return AuthorizationEngine(strict, registry, grants)

    async def test_registered_scopes_accepted(self, strict_engine):
        result = await strict_engine.authorize(make_request(scope="read write"))
        assert result.scope == "read write"

    async def test_unregistered_scope_rejected(self, strict_engine):
        with pytest.raises(InvalidScopeError):
            await strict_engine.authorize(make_request(scope="read admin"))

    async def test_default_scope_still_applies(self, strict_engine):
        result = await strict_engine.authorize(make_request(scope=None))
        assert result.scope == "read"
