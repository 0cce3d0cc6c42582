"""Tests for CacheLayer — write-through projection with hit/miss counters."""

import threading

from memorybank.services.cache import CacheLayer


class TestEnabled:
    def test_miss_then_hit(self):
        cache = CacheLayer(enabled=True)
        assert cache.get("progress") is None
        cache.set("progress", "p")
        assert cache.get("progress") == "p"

        stats = cache.stats()
        assert (stats.hits, stats.misses) == (1, 1)
        assert stats.ratio == 0.5

    def test_empty_string_is_a_hit(self):
        cache = CacheLayer(enabled=True)
        cache.set("progress", "")
        assert cache.get("progress") == ""
        assert cache.stats().hits == 1

    def test_set_overwrites(self):
        cache = CacheLayer(enabled=True)
        cache.set("progress", "one")
        cache.set("progress", "two")
        assert cache.get("progress") == "two"
        assert len(cache) == 1

    def test_invalidate(self):
        cache = CacheLayer(enabled=True)
        cache.set("progress", "p")
        assert cache.invalidate("progress") is True
        assert cache.invalidate("progress") is False
        assert "progress" not in cache

    def test_clear_drops_entries_and_stamps_time(self):
        cache = CacheLayer(enabled=True)
        before = cache.stats().last_cleared_at
        cache.set("progress", "p")
        cache.set("activeContext", "a")

        assert cache.clear() == 2
        stats = cache.stats()
        assert stats.size == 0
        assert stats.last_cleared_at >= before

    def test_clear_keeps_counters(self):
        cache = CacheLayer(enabled=True)
        cache.set("progress", "p")
        cache.get("progress")
        cache.clear()
        assert cache.stats().hits == 1


class TestDisabled:
    def test_every_get_is_a_miss(self):
        cache = CacheLayer(enabled=False)
        cache.set("progress", "p")
        assert cache.get("progress") is None
        assert cache.get("progress") is None
        stats = cache.stats()
        assert stats.enabled is False
        assert (stats.hits, stats.misses, stats.size) == (0, 2, 0)
        assert stats.ratio == 0.0

    def test_set_is_noop(self):
        cache = CacheLayer()
        cache.set("progress", "p")
        assert len(cache) == 0

    def test_clear_still_stamps(self):
        cache = CacheLayer()
        assert cache.clear() == 0


class TestStats:
    def test_ratio_none_before_first_lookup(self):
        stats = CacheLayer(enabled=True).stats()
        assert stats.ratio is None
        assert stats.last_cleared_at.tzinfo is not None

    def test_concurrent_gets_counted_exactly(self):
        cache = CacheLayer(enabled=True)
        cache.set("progress", "p")

        def reader():
            for _ in range(200):
                cache.get("progress")

        threads = [threading.Thread(target=reader) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.stats().hits == 1600
