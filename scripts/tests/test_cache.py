"""Category K: TTL Cache Tests

Expiry is driven by an injected clock; no test sleeps.
"""

from helpers import FakeClock

from arena_meta.cache import TTLCache


class TestK1_Expiry:

    def test_hit_before_expiry(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("k", "v")
        clock.advance(9.9)
        assert cache.get("k") == "v"

    def test_miss_at_expiry(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("k", "v")
        clock.advance(10)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_default_returned_on_miss(self):
        cache = TTLCache(10, clock=FakeClock())
        assert cache.get("missing", "fallback") == "fallback"

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("short", 1, ttl_seconds=1)
        cache.set("long", 2)
        clock.advance(5)
        assert cache.get("short") is None
        assert cache.get("long") == 2


class TestK2_Invalidation:

    def test_invalidate(self):
        cache = TTLCache(10, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        cache.invalidate("never-set")
        assert cache.get("a") is None
        assert cache.get("b") == 2
