"""Access and refresh token store tests (in-memory backend)."""

import re

import pytest

TEN_YEARS = 10 * 365 * 24 * 3600


@pytest.mark.storage
class TestAccessTokens:
    """Test access token issuance, lookup and expiry."""

    async def test_tokens_unique_and_well_formed(self, token_store):
        """10,000 issuances yield 10,000 distinct 64-char hex tokens."""
        tokens = [await token_store.issue_access_token("test-client", "read", 3600) for _ in range(10_000)]
        assert len(set(tokens)) == 10_000
        assert all(re.fullmatch(r"[0-9a-f]{64}", token) for token in tokens)

    async def test_lookup(self, token_store, clock):
        token = await token_store.issue_access_token("test-client", "read write", 3600)
        record = await token_store.lookup_access_token(token)
        assert record.client_id == "test-client"
        assert record.scope == "read write"
        assert record.expires_at == clock() + 3600
        assert record.exp == int(clock() + 3600)
        assert await token_store.is_access_token_valid(token)

    async def test_lookup_unknown(self, token_store):
        assert await token_store.lookup_access_token("f" * 64) is None
        assert not await token_store.is_access_token_valid("f" * 64)

    async def test_expired_token_is_absent(self, token_store, clock):
        token = await token_store.issue_access_token("test-client", "read", 3600)
        clock.advance(3601)
        assert await token_store.lookup_access_token(token) is None
        assert await token_store.count_access_tokens() == 0

    async def test_count_and_purge(self, token_store, clock):
        await token_store.issue_access_token("test-client", "read", 60)
        await token_store.issue_access_token("test-client", "read", 3600)
        assert await token_store.count_access_tokens() == 2
        clock.advance(61)
        assert await token_store.count_access_tokens() == 1
        assert await token_store.purge_expired() == 1


@pytest.mark.storage
class TestRefreshTokens:
    """Test refresh token issuance, lookup and consumption."""

    async def test_refresh_token_without_lifetime_never_expires(self, token_store, clock):
        token = await token_store.issue_refresh_token("test-client", "read")
        assert re.fullmatch(r"[0-9a-f]{64}", token)
        clock.advance(TEN_YEARS)
        record = await token_store.lookup_refresh_token(token)
        assert record.expires_at is None
        assert record.client_id == "test-client"

    async def test_refresh_token_with_lifetime_expires(self, token_store, clock):
        token = await token_store.issue_refresh_token("test-client", "read", ttl=60)
        assert await token_store.lookup_refresh_token(token) is not None
        clock.advance(61)
        assert await token_store.lookup_refresh_token(token) is None
        assert await token_store.count_refresh_tokens() == 0

    async def test_lookup_does_not_consume(self, token_store):
        token = await token_store.issue_refresh_token("test-client", "read")
        assert await token_store.lookup_refresh_token(token) is not None
        assert await token_store.lookup_refresh_token(token) is not None

    async def test_consume_is_single_use(self, token_store):
        token = await token_store.issue_refresh_token("test-client", "read")
        record = await token_store.consume_refresh_token(token)
        assert record.token == token
        assert await token_store.consume_refresh_token(token) is None
        assert await token_store.lookup_refresh_token(token) is None

    async def test_access_and_refresh_namespaces_are_separate(self, token_store):
        refresh = await token_store.issue_refresh_token("test-client", "read")
        assert await token_store.lookup_access_token(refresh) is None
        access = await token_store.issue_access_token("test-client", "read", 3600)
        assert await token_store.lookup_refresh_token(access) is None
