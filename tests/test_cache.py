import asyncio

from redis.exceptions import ConnectionError as RedisConnectionError

from notesaid.cache import (
    CacheKeys,
    CacheTTL,
    RedisCache,
    quick_link_invalidation,
    subject_invalidation,
)


class BrokenRedis:
    """Redis client whose every call fails like an unreachable server."""

    async def get(self, key):
        raise RedisConnectionError("down")

    async def set(self, *args, **kwargs):
        raise RedisConnectionError("down")

    async def delete(self, *keys):
        raise RedisConnectionError("down")

    async def scan_iter(self, match=None):
        raise RedisConnectionError("down")
        yield  # pragma: no cover

    async def aclose(self):
        pass


class TestCacheKeys:
    def test_curriculum_defaults_to_all(self):
        assert CacheKeys.curriculum() == "curriculum:all:all"
        assert CacheKeys.curriculum(2024) == "curriculum:2024:all"
        assert CacheKeys.curriculum(None, "comps") == "curriculum:all:comps"
        assert CacheKeys.curriculum(2024, "comps") == "curriculum:2024:comps"

    def test_subject_and_module(self):
        assert CacheKeys.subject("dsa") == "subject:dsa"
        assert CacheKeys.subject("dsa", "2") == "subject:dsa:module:2"

    def test_quick_link_keys(self):
        assert CacheKeys.quick_links("dsa") == "quick-links:dsa"
        assert CacheKeys.admin_quick_links() == "admin:quick-links:all"
        assert CacheKeys.admin_quick_links("dsa") == "admin:quick-links:dsa"

    def test_leaderboard_key_ignores_param_order_and_unknown_params(self):
        a = CacheKeys.leaderboard({"page": "2", "admission_year": "2023", "junk": "x"})
        b = CacheKeys.leaderboard({"admission_year": "2023", "page": "2"})
        assert a == b == "leaderboard:admission_year=2023&page=2"

    def test_leaderboard_default_key(self):
        assert CacheKeys.leaderboard() == "leaderboard:default"
        assert CacheKeys.leaderboard({"junk": "x", "name": ""}) == "leaderboard:default"

    def test_subject_invalidation_is_exact(self):
        keys, patterns = subject_invalidation("os")
        assert keys == ["subject:os", "stats:os"]
        assert patterns == ["subject:os:module:*"]

    def test_quick_link_invalidation_dedupes(self):
        keys = quick_link_invalidation(["dsa", "dsa", "os"])
        assert keys == [
            "admin:quick-links:all",
            "admin:quick-links:dsa",
            "quick-links:dsa",
            "admin:quick-links:os",
            "quick-links:os",
        ]


class TestRedisCache:
    async def test_set_then_get_round_trips_json(self, cache, redis_client):
        await cache.set("k", {"a": [1, 2]}, CacheTTL.SHORT)
        assert await cache.get("k") == {"a": [1, 2]}
        ttl = await redis_client.ttl("k")
        assert 0 < ttl <= CacheTTL.SHORT

    async def test_missing_key_is_a_miss(self, cache):
        assert await cache.get("nope") is None

    async def test_undecodable_value_is_a_miss(self, cache, redis_client):
        await redis_client.set("bad", "{not json")
        assert await cache.get("bad") is None

    async def test_invalidate_subject_leaves_prefix_siblings(self, cache):
        for key in ("subject:os", "subject:os:module:1", "stats:os", "subject:os2", "subject:os2:module:1"):
            await cache.set(key, {"v": key})

        await cache.invalidate_subject("os")

        assert await cache.get("subject:os") is None
        assert await cache.get("subject:os:module:1") is None
        assert await cache.get("stats:os") is None
        assert await cache.get("subject:os2") == {"v": "subject:os2"}
        assert await cache.get("subject:os2:module:1") == {"v": "subject:os2:module:1"}

    async def test_get_or_load_serves_cached_value(self, cache):
        calls = []

        async def loader():
            calls.append(1)
            return {"n": len(calls)}

        assert await cache.get_or_load("x", loader) == {"n": 1}
        assert await cache.get_or_load("x", loader) == {"n": 1}
        assert len(calls) == 1

        await cache.delete("x")
        assert await cache.get_or_load("x", loader) == {"n": 2}

    async def test_expired_entry_reloads(self, cache):
        calls = []

        async def loader():
            calls.append(1)
            return {"n": len(calls)}

        assert await cache.get_or_load("short", loader, ttl=1) == {"n": 1}
        assert await cache.get_or_load("short", loader, ttl=1) == {"n": 1}

        await asyncio.sleep(1.2)

        assert await cache.get("short") is None
        assert await cache.get_or_load("short", loader, ttl=1) == {"n": 2}
        assert len(calls) == 2


class TestBestEffort:
    async def test_disabled_cache_always_misses(self):
        cache = RedisCache.from_url(None)
        assert not cache.available
        await cache.set("k", 1)
        assert await cache.get("k") is None
        await cache.delete("k")
        await cache.delete_pattern("k*")
        await cache.close()

    async def test_backend_errors_never_raise(self):
        cache = RedisCache(BrokenRedis())
        assert await cache.get("k") is None
        await cache.set("k", {"a": 1})
        await cache.delete("k")
        await cache.invalidate_subject("dsa")

    async def test_get_or_load_falls_through_on_backend_errors(self):
        cache = RedisCache(BrokenRedis())

        async def loader():
            return {"fresh": True}

        assert await cache.get_or_load("k", loader) == {"fresh": True}
