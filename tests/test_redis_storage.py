"""Redis backend tests, run against fakeredis."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from oauth_server.api.server import create_api_app
from oauth_server.storage import (
    GrantExpired,
    GrantNotFound,
    RedisGrantStore,
    RedisTokenStore,
    StorageUnavailable,
    create_stores,
)

REDIRECT_URI = "http://localhost:3001/callback"


@pytest.fixture
def redis_grants(fake_redis, clock):
    return RedisGrantStore(fake_redis, clock)


@pytest.fixture
def redis_tokens(fake_redis, clock):
    return RedisTokenStore(fake_redis, clock)


@pytest.mark.redis
@pytest.mark.storage
class TestRedisGrantStore:
    """Test authorization codes stored in Redis."""

    async def test_code_key_layout(self, redis_grants, fake_redis):
        code = await redis_grants.issue("test-client", REDIRECT_URI, "read", 600)
        key = f"oauth:code:{code}"
        assert await fake_redis.exists(key) == 1
        assert 0 < await fake_redis.ttl(key) <= 600

    async def test_redeem_is_single_use(self, redis_grants, fake_redis):
        code = await redis_grants.issue("test-client", REDIRECT_URI, "read write", 600)
        grant = await redis_grants.redeem(code)
        assert grant.client_id == "test-client"
        assert grant.scope == "read write"
        assert await fake_redis.exists(f"oauth:code:{code}") == 0
        with pytest.raises(GrantNotFound):
            await redis_grants.redeem(code)

    async def test_concurrent_redemptions(self, redis_grants):
        code = await redis_grants.issue("test-client", REDIRECT_URI, "read", 600)
        results = await asyncio.gather(
            *(redis_grants.redeem(code) for _ in range(20)),
            return_exceptions=True,
        )
        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert sum(1 for r in results if isinstance(r, GrantNotFound)) == 19

    async def test_expiry_checked_on_read(self, redis_grants, clock):
        """expires_at is enforced even while the key itself is still alive."""
        code = await redis_grants.issue("test-client", REDIRECT_URI, "read", 600)
        clock.advance(601)
        with pytest.raises(GrantExpired):
            await redis_grants.redeem(code)

    async def test_count_and_purge(self, redis_grants, clock):
        await redis_grants.issue("test-client", REDIRECT_URI, "read", 60)
        await redis_grants.issue("test-client", REDIRECT_URI, "read", 600)
        assert await redis_grants.count() == 2
        clock.advance(61)
        assert await redis_grants.count() == 1
        assert await redis_grants.purge_expired() == 1
        assert await redis_grants.count() == 1


@pytest.mark.redis
@pytest.mark.storage
class TestRedisTokenStore:
    """Test access and refresh tokens stored in Redis."""

    async def test_access_token_lookup(self, redis_tokens, fake_redis, clock):
        token = await redis_tokens.issue_access_token("test-client", "read", 3600)
        assert len(token) == 64
        assert 0 < await fake_redis.ttl(f"oauth:token:{token}") <= 3600
        record = await redis_tokens.lookup_access_token(token)
        assert record.client_id == "test-client"
        assert record.exp == int(clock() + 3600)

    async def test_expired_access_token_deleted_on_read(self, redis_tokens, fake_redis, clock):
        token = await redis_tokens.issue_access_token("test-client", "read", 3600)
        clock.advance(3601)
        assert await redis_tokens.lookup_access_token(token) is None
        assert await fake_redis.exists(f"oauth:token:{token}") == 0

    async def test_refresh_token_without_lifetime_has_no_key_ttl(self, redis_tokens, fake_redis):
        token = await redis_tokens.issue_refresh_token("test-client", "read")
        assert await fake_redis.ttl(f"oauth:refresh:{token}") == -1
        assert (await redis_tokens.lookup_refresh_token(token)).expires_at is None

    async def test_consume_refresh_token(self, redis_tokens):
        token = await redis_tokens.issue_refresh_token("test-client", "read", ttl=60)
        assert (await redis_tokens.consume_refresh_token(token)).token == token
        assert await redis_tokens.consume_refresh_token(token) is None

    async def test_counts_and_purge(self, redis_tokens, clock):
        await redis_tokens.issue_access_token("test-client", "read", 60)
        await redis_tokens.issue_access_token("test-client", "read", 3600)
        await redis_tokens.issue_refresh_token("test-client", "read")
        await redis_tokens.issue_refresh_token("test-client", "read", ttl=60)
        assert await redis_tokens.count_access_tokens() == 2
        assert await redis_tokens.count_refresh_tokens() == 2
        clock.advance(61)
        assert await redis_tokens.count_access_tokens() == 1
        assert await redis_tokens.count_refresh_tokens() == 1
        assert await redis_tokens.purge_expired() == 2


@pytest.mark.redis
class TestRedisFailures:
    """Redis faults surface as StorageUnavailable, never as protocol errors."""

    async def test_redeem_on_unreachable_redis(self):
        broken = AsyncMock()
        broken.getdel.side_effect = RedisConnectionError("connection refused")
        with pytest.raises(StorageUnavailable):
            await RedisGrantStore(broken).redeem("0" * 32)

    async def test_token_endpoint_returns_503(self, settings):
        broken = AsyncMock()
        broken.get.side_effect = RedisConnectionError("connection refused")
        broken.getdel.side_effect = RedisConnectionError("connection refused")
        app = create_api_app(settings.model_copy(update={"storage_backend": "redis"}), redis_client=broken)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.post("/oauth/token", data={
                "grant_type": "authorization_code",
                "code": "0" * 32,
                "redirect_uri": REDIRECT_URI,
                "client_id": "test-client",
                "client_secret": "test-secret",
            })
        assert response.status_code == 503
        assert response.json()["error"] == "temporarily_unavailable"

    def test_redis_backend_requires_client(self, settings):
        with pytest.raises(ValueError):
            create_stores(settings.model_copy(update={"storage_backend": "redis"}))


@pytest.mark.redis
@pytest.mark.oauth
class TestRedisBackedFlow:
    """Full authorization code flow over the Redis backend."""

    async def test_round_trip(self, settings, fake_redis, clock):
        app = create_api_app(
            settings.model_copy(update={"storage_backend": "redis"}),
            redis_client=fake_redis,
            clock=clock,
        )
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.get("/oauth/authorize", params={
                "client_id": "test-client",
                "redirect_uri": REDIRECT_URI,
                "response_type": "code",
                "scope": "read write",
                "state": "abc",
            })
            assert response.status_code == 302
            code = httpx.URL(response.headers["location"]).params["code"]

            response = await http.post("/oauth/token", data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": REDIRECT_URI,
                "client_id": "test-client",
                "client_secret": "test-secret",
            })
            assert response.status_code == 200
            tokens = response.json()

            response = await http.post("/oauth/introspect", data={"token": tokens["access_token"]})
            assert response.json() == {
                "active": True,
                "client_id": "test-client",
                "scope": "read write",
                "exp": int(clock() + 3600),
            }

            response = await http.get("/health")
            assert response.json()["storage"] == "redis"
            assert response.json()["active_tokens"] == 1
            assert response.json()["active_codes"] == 0

        assert await fake_redis.exists(f"oauth:refresh:{tokens['refresh_token']}") == 1
