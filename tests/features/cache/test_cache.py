"""Tests for the authorization cache and its backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from facility_authz.config.settings import AuthzSettings
from facility_authz.core.exceptions import CacheError
from facility_authz.features.cache import (
    AuthzCache,
    MemoryCacheAdapter,
    RedisCacheAdapter,
    create_cache,
)

from tests.fakes import ManualClock


class TestMemoryCacheAdapter:
    """Test the in-memory backend."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def adapter(self, clock):
        return MemoryCacheAdapter(default_ttl=10, max_entries=3, clock=clock)

    @pytest.mark.asyncio
    async def test_set_and_get(self, adapter):
        await adapter.set("a", {"value": 1})

        assert await adapter.get("a") == {"value": 1}
        assert await adapter.get("missing") is None

    @pytest.mark.asyncio
    async def test_entries_expire_at_ttl(self, adapter, clock):
        await adapter.set("a", 1, ttl=5)

        clock.advance(4)
        assert await adapter.get("a") == 1

        clock.advance(1)
        assert await adapter.get("a") is None

        stats = await adapter.stats()
        assert stats["expirations"] == 1

    @pytest.mark.asyncio
    async def test_oldest_entry_evicted(self, adapter):
        for key in ("a", "b", "c", "d"):
            await adapter.set(key, key)

        assert await adapter.get("a") is None
        assert await adapter.get("d") == "d"
        assert (await adapter.stats())["evictions"] == 1

    @pytest.mark.asyncio
    async def test_delete_prefix(self, adapter):
        await adapter.set("decision:u1:a", 1)
        await adapter.set("decision:u1:b", 2)
        await adapter.set("decision:u2:a", 3)

        assert await adapter.delete_prefix("decision:u1:") == 2
        assert await adapter.get("decision:u2:a") == 3

    @pytest.mark.asyncio
    async def test_stats(self, adapter):
        await adapter.set("a", 1)
        await adapter.get("a")
        await adapter.get("b")

        stats = await adapter.stats()

        assert stats["backend"] == "memory"
        assert stats["total_hits"] == 1
        assert stats["total_misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["size"] == 1


class TestAuthzCache:
    """Test the namespaced cache service."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def cache(self, clock):
        return AuthzCache(MemoryCacheAdapter(clock=clock), ttl=2)

    @pytest.mark.asyncio
    async def test_uses_single_ttl(self, cache, clock):
        await cache.set(cache.user_teams_key("u1"), ["team"])

        clock.advance(1.9)
        assert await cache.get(cache.user_teams_key("u1")) == ["team"]
        clock.advance(0.2)
        assert await cache.get(cache.user_teams_key("u1")) is None

    def test_decision_key_includes_facility(self):
        with_facility = AuthzCache.decision_key("u1", "patients", "read", "f1")
        without_facility = AuthzCache.decision_key("u1", "patients", "read", None)

        assert with_facility != without_facility
        assert with_facility.startswith("decision:u1:")

    def test_decision_key_includes_resource_facility(self):
        plain = AuthzCache.decision_key("u1", "patients", "read", "f1")
        conflicting = AuthzCache.decision_key("u1", "patients", "read", "f1", "f2")

        assert plain != conflicting
        assert conflicting.startswith("decision:u1:")

    @pytest.mark.asyncio
    async def test_generation_changes_on_invalidation(self, cache):
        initial = cache.generation("u1")

        await cache.invalidate_user("u2")
        assert cache.generation("u1") == initial

        await cache.invalidate_user("u1")
        after_user = cache.generation("u1")
        assert after_user != initial

        await cache.invalidate_decisions()
        after_reload = cache.generation("u1")
        assert after_reload != after_user

        await cache.clear()
        assert cache.generation("u1") != after_reload

    @pytest.mark.asyncio
    async def test_invalidate_user(self, cache):
        await cache.set(cache.user_teams_key("u1"), [])
        await cache.set(cache.user_context_key("u1"), "context")
        await cache.set(cache.decision_key("u1", "patients", "read", "f1"), "decision")
        await cache.set(cache.decision_key("u2", "patients", "read", "f1"), "other")

        await cache.invalidate_user("u1")

        assert await cache.get(cache.user_teams_key("u1")) is None
        assert await cache.get(cache.user_context_key("u1")) is None
        assert await cache.get(cache.decision_key("u1", "patients", "read", "f1")) is None
        assert await cache.get(cache.decision_key("u2", "patients", "read", "f1")) == "other"

    @pytest.mark.asyncio
    async def test_invalidate_decisions_keeps_teams(self, cache):
        await cache.set(cache.user_teams_key("u1"), [])
        await cache.set(cache.decision_key("u1", "patients", "read", None), "decision")

        assert await cache.invalidate_decisions() == 1
        assert await cache.get(cache.user_teams_key("u1")) == []

    @pytest.mark.asyncio
    async def test_backend_errors_degrade_to_miss(self):
        backend = AsyncMock()
        backend.get.side_effect = CacheError("down")
        backend.set.side_effect = CacheError("down")
        cache = AuthzCache(backend, ttl=2)

        assert await cache.get("key") is None
        await cache.set("key", "value")

    @pytest.mark.asyncio
    async def test_stats_report_ttl(self, cache):
        stats = await cache.stats()

        assert stats["ttl_seconds"] == 2


class TestRedisCacheAdapter:
    """Test the redis backend against a mocked client."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_set_rounds_ttl_up(self, client):
        adapter = RedisCacheAdapter(client, default_ttl=2.5)

        await adapter.set("k", {"v": 1})

        args, kwargs = client.set.call_args
        assert args[0] == "authz:k"
        assert kwargs["ex"] == 3

    @pytest.mark.asyncio
    async def test_round_trip_through_pickle(self, client):
        adapter = RedisCacheAdapter(client, default_ttl=2)
        await adapter.set("k", {"v": 1})
        client.get.return_value = client.set.call_args[0][1]

        assert await adapter.get("k") == {"v": 1}

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_errors(self, client):
        client.get.side_effect = RedisConnectionError("refused")
        adapter = RedisCacheAdapter(client)

        with pytest.raises(CacheError):
            await adapter.get("k")

    @pytest.mark.asyncio
    async def test_delete_prefix_scans_namespace(self):
        client = MagicMock()

        async def scan_iter(match):
            for key in (b"authz:decision:u1:a", b"authz:decision:u1:b"):
                yield key

        client.scan_iter = scan_iter
        client.delete = AsyncMock(return_value=2)
        adapter = RedisCacheAdapter(client)

        assert await adapter.delete_prefix("decision:u1:") == 2
        client.delete.assert_awaited_once_with(b"authz:decision:u1:a", b"authz:decision:u1:b")

    @pytest.mark.asyncio
    async def test_delete_prefix_escapes_glob_characters(self):
        client = MagicMock()
        patterns = []

        async def scan_iter(match):
            patterns.append(match)
            for key in ():
                yield key

        client.scan_iter = scan_iter
        client.delete = AsyncMock(return_value=0)
        adapter = RedisCacheAdapter(client)

        assert await adapter.delete_prefix("decision:u[1]*?:") == 0
        assert patterns == ["authz:decision:u\\[1\\]\\*\\?:*"]
        client.delete.assert_not_awaited()


class TestCreateCache:
    """Test backend selection from settings."""

    def test_memory_backend_by_default(self):
        cache = create_cache(AuthzSettings(cache_ttl_seconds=2))

        assert isinstance(cache.backend, MemoryCacheAdapter)
        assert cache.ttl == 2

    def test_redis_backend_requires_url(self):
        with pytest.raises(CacheError):
            create_cache(AuthzSettings(cache_backend="redis", redis_url=None))

    def test_redis_backend(self):
        cache = create_cache(AuthzSettings(cache_backend="redis", redis_url="redis://localhost:6379/0"))

        assert isinstance(cache.backend, RedisCacheAdapter)
