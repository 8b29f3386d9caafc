import asyncio
import pytest

from app.core.cache import (
    CacheStore, DeleteResult, MemoryCacheBackend, NullCacheBackend, RedisCacheBackend,
    _escape_glob, create_cache_store,
)
from app.core.config import Settings
from tests.helpers.fakes import FailingBackend, FakeClock, NonScanningMemoryBackend, SlowBackend


def make_store(clock=None, **kwargs):
    backend = MemoryCacheBackend(clock=clock) if clock else MemoryCacheBackend()
    return CacheStore(backend, **kwargs)


class TestMemoryStore:

    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        store = make_store()
        assert await store.set("product:1", {"success": True, "data": {"id": 1}}, ttl=60) is True
        assert await store.get("product:1") == {"success": True, "data": {"id": 1}}
        assert await store.delete("product:1") is True
        assert await store.get("product:1") is None
        assert await store.delete("product:1") is False

    @pytest.mark.asyncio
    async def test_entry_expires_exactly_at_ttl(self):
        clock = FakeClock()
        store = make_store(clock)
        await store.set("blog:hello:en", {"v": 1}, ttl=300)

        clock.advance(300 - 0.001)
        assert await store.get("blog:hello:en") == {"v": 1}

        clock.advance(0.002)
        assert await store.get("blog:hello:en") is None

    @pytest.mark.asyncio
    async def test_ttl_reports_seconds_left(self):
        clock = FakeClock()
        store = make_store(clock)
        await store.set("product:1", {"v": 1}, ttl=900)
        assert await store.ttl("product:1") == 900

        clock.advance(899.5)
        assert await store.ttl("product:1") == 1
        clock.advance(1)
        assert await store.ttl("product:1") is None
        assert await store.ttl("missing") is None

    @pytest.mark.asyncio
    async def test_default_ttl_applies_when_none_given(self):
        clock = FakeClock()
        store = make_store(clock, default_ttl=10)
        await store.set("k", "v")
        clock.advance(9)
        assert await store.get("k") == "v"
        clock.advance(1)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copies(self):
        store = make_store()
        value = {"items": [1, 2]}
        await store.set("k", value, ttl=60)
        value["items"].append(3)
        cached = await store.get("k")
        cached["items"].append(4)
        assert await store.get("k") == {"items": [1, 2]}

    @pytest.mark.asyncio
    async def test_non_json_value_is_refused(self):
        store = make_store()
        assert await store.set("k", {"when": object()}, ttl=60) is False
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_by_prefix_only_touches_prefix(self):
        store = make_store()
        for key in ("products:list:a", "products:list:b", "product:1", "admin:products:list:a"):
            await store.set(key, 1, ttl=60)

        result = await store.delete_by_prefix("products:list:")
        assert result == DeleteResult(2)
        assert await store.get("product:1") == 1
        assert await store.get("admin:products:list:a") == 1

    @pytest.mark.asyncio
    async def test_delete_many_counts_existing_keys(self):
        store = make_store()
        await store.set("a", 1, ttl=60)
        await store.set("b", 1, ttl=60)
        assert await store.delete_many(["a", "b", "c", "a"]) == DeleteResult(2)
        assert await store.delete_many([]) == DeleteResult(0)

    @pytest.mark.asyncio
    async def test_keys_skip_expired_entries(self):
        clock = FakeClock()
        store = make_store(clock)
        await store.set("cart:s1", 1, ttl=5)
        await store.set("cart:s2", 1, ttl=50)
        clock.advance(10)
        assert await store.keys("cart:") == ["cart:s2"]

    @pytest.mark.asyncio
    async def test_health_check_round_trip(self):
        store = make_store()
        assert await store.health_check() is True
        assert await store.get("health_check_test") is None


class TestFallbackKeys:

    @pytest.mark.asyncio
    async def test_non_scanning_backend_deletes_fallback_keys(self):
        store = CacheStore(NonScanningMemoryBackend())
        await store.set("products:list:default", 1, ttl=60)
        await store.set("products:list:other", 1, ttl=60)

        result = await store.delete_by_prefix(
            "products:list:", fallback_keys=["products:list:default", "blogs:list:x"]
        )
        assert result.count == 1
        assert await store.get("products:list:default") is None
        # Not enumerable and not in the fallback list: left to TTL
        assert await store.get("products:list:other") == 1


class TestDegradedStore:

    @pytest.mark.asyncio
    async def test_failing_backend_never_raises(self):
        store = CacheStore(FailingBackend())
        assert await store.get("k") is None
        assert await store.set("k", 1, ttl=60) is False
        assert await store.delete("k") is False
        assert await store.delete_many(["k"]) == DeleteResult(0, failed=True)
        assert await store.delete_by_prefix("k") == DeleteResult(0, failed=True)
        assert await store.keys("k") == []
        assert await store.clear() is False
        assert await store.health_check() is False
        assert store.failures >= 8
        assert "backend down" in store.last_error

    @pytest.mark.asyncio
    async def test_slow_backend_is_cut_off_by_timeout(self):
        store = CacheStore(SlowBackend(delay=0.5), operation_timeout=0.05)
        await store.set("k", 1, ttl=60)
        assert await store.get("k") is None
        assert "get" in store.last_error

    @pytest.mark.asyncio
    async def test_init_swaps_unreachable_backend_for_null(self):
        store = CacheStore(FailingBackend())
        assert await store.init() is False
        assert isinstance(store.backend, NullCacheBackend)
        assert store.supports_prefix_delete is False

    @pytest.mark.asyncio
    async def test_null_backend_is_pass_through(self):
        store = CacheStore(NullCacheBackend())
        assert await store.init() is True
        assert await store.set("k", 1, ttl=60) is False
        assert await store.get("k") is None
        assert await store.delete_by_prefix("k", fallback_keys=["k1"]) == DeleteResult(0)

    @pytest.mark.asyncio
    async def test_stats_report_backend_and_failures(self):
        store = CacheStore(FailingBackend())
        await store.get("k")
        stats = await store.stats()
        assert stats["backend"] == "failing"
        assert stats["failures"] >= 1


class TestRedisBackend:

    def test_glob_characters_are_escaped(self):
        assert _escape_glob("products:list:") == "products:list:"
        assert _escape_glob("blog:a*b?[c]:") == "blog:a\\*b\\?\\[c\\]:"

    def test_factory_picks_backend_from_settings(self):
        settings = Settings(ADMIN_API_KEY="x", CACHE_ENABLED=False)
        assert create_cache_store(settings).backend_name == "null"

        settings = Settings(ADMIN_API_KEY="x", CACHE_ENABLED=True, REDIS_URL=None)
        assert create_cache_store(settings).backend_name == "memory"

        settings = Settings(ADMIN_API_KEY="x", CACHE_ENABLED=True, REDIS_URL="redis://localhost:6379/15")
        store = create_cache_store(settings)
        assert isinstance(store.backend, RedisCacheBackend)
        asyncio.run(store.close())
