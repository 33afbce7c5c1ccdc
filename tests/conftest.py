"""Pytest configuration for the OAuth authorization server tests."""

from typing import Generator
from urllib.parse import parse_qs, urlparse

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from oauth_server.api.oauth.authorization import AuthorizationEngine
from oauth_server.api.oauth.config import Settings
from oauth_server.api.oauth.tokens import TokenEngine
from oauth_server.api.server import create_api_app
from oauth_server.storage import create_stores

TEST_CLIENT_ID = "test-client"
TEST_CLIENT_SECRET = "test-secret"
TEST_REDIRECT_URI = "http://localhost:3001/callback"


class FakeClock:
    """Manually advanced time source (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def stores(settings, clock):
    return create_stores(settings, clock=clock)


@pytest.fixture
def registry(stores):
    return stores[0]


@pytest.fixture
def grant_store(stores):
    return stores[1]


@pytest.fixture
def token_store(stores):
    return stores[2]


@pytest.fixture
def authorization_engine(settings, registry, grant_store) -> AuthorizationEngine:
    return AuthorizationEngine(settings, registry, grant_store)


@pytest.fixture
def token_engine(settings, registry, grant_store, token_store) -> TokenEngine:
    return TokenEngine(settings, registry, grant_store, token_store)


@pytest.fixture
def app(settings, clock) -> FastAPI:
    return create_api_app(settings, clock=clock)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """HTTP client against the in-process app; redirects are not followed."""
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def fake_redis():
    """Provide an isolated fake Redis client."""
    redis_client = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield redis_client
    await redis_client.aclose()


def code_from_location(location: str) -> str:
    """Extract the authorization code from a redirect Location header."""
    return parse_qs(urlparse(location).query)["code"][0]


def authorize(client: TestClient, **overrides) -> str:
    """Run /oauth/authorize for the test client and return the issued code."""
    params = {
        "client_id": TEST_CLIENT_ID,
        "redirect_uri": TEST_REDIRECT_URI,
        "response_type": "code",
        "scope": "read write",
        "state": "xyz",
    }
    params.update(overrides)
    response = client.get("/oauth/authorize", params=params)
    assert response.status_code == 302, response.text
    return code_from_location(response.headers["location"])


def exchange_code(client: TestClient, code: str, **overrides):
    """POST an authorization_code grant to /oauth/token."""
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": TEST_REDIRECT_URI,
        "client_id": TEST_CLIENT_ID,
        "client_secret": TEST_CLIENT_SECRET,
    }
    data.update(overrides)
    return client.post("/oauth/token", data=data)


@pytest.fixture
def access_token(client) -> str:
    """A live access token with scope 'read write'."""
    response = exchange_code(client, authorize(client))
    assert response.status_code == 200, response.text
    return response.json()["access_token"]
