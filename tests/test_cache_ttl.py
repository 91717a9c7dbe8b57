"""
Tests for the result cache.

Tests cover:
- Sliding TTL: hits refresh the idle timer
- Expired item returns None
- cleanup_expired() removes stale items
- TTL=0 means no expiration
- LRU eviction and statistics
- Thread safety
"""
import threading

import pytest

from feedtape_tts.tts.cache import ResultCache


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestSlidingTTL:
    """Tests for idle-time expiration."""

    def test_hit_refreshes_ttl(self, clock):
        """Each hit restarts the idle timer; only an idle gap past the TTL expires."""
        cache = ResultCache(max_items=10, ttl_seconds=10, clock=clock)
        cache.set("link", b"audio")

        clock.now = 8
        assert cache.get("link")[0] == b"audio"
        clock.now = 16
        assert cache.get("link")[0] == b"audio"
        clock.now = 27
        assert cache.get("link")[0] is None

    def test_expired_item_removed_and_counted(self, clock):
        cache = ResultCache(max_items=10, ttl_seconds=5, clock=clock)
        cache.set("link", b"audio")

        clock.advance(6)
        value, _ = cache.get("link")

        assert value is None
        assert "link" not in cache
        stats = cache.stats()
        assert stats["expirations"] == 1
        assert stats["misses"] == 1

    def test_exactly_at_ttl_still_valid(self, clock):
        cache = ResultCache(max_items=10, ttl_seconds=5, clock=clock)
        cache.set("link", b"audio")

        clock.advance(5)

        assert cache.get("link")[0] == b"audio"

    def test_zero_ttl_never_expires(self, clock):
        """TTL=0 disables expiration."""
        cache = ResultCache(max_items=10, ttl_seconds=0, clock=clock)
        cache.set("link", b"audio")

        clock.advance(10 ** 9)

        assert cache.get("link")[0] == b"audio"
        assert cache.cleanup_expired() == 0

    def test_contains_does_not_refresh(self, clock):
        cache = ResultCache(max_items=10, ttl_seconds=10, clock=clock)
        cache.set("link", b"audio")

        clock.now = 8
        assert "link" in cache
        clock.now = 11
        assert cache.get("link")[0] is None


class TestCleanupExpired:
    """Tests for cleanup_expired()."""

    def test_removes_only_stale_entries(self, clock):
        cache = ResultCache(max_items=10, ttl_seconds=10, clock=clock)
        cache.set("old-1", b"1")
        cache.set("old-2", b"2")
        clock.advance(8)
        cache.set("fresh", b"3")
        clock.advance(5)

        assert cache.cleanup_expired() == 2
        assert len(cache) == 1
        assert "fresh" in cache
        assert cache.stats()["expirations"] == 2

    def test_nothing_to_clean(self, clock):
        cache = ResultCache(max_items=10, ttl_seconds=10, clock=clock)
        cache.set("link", b"audio")
        assert cache.cleanup_expired() == 0


class TestLRU:
    """Tests for capacity and eviction."""

    def test_least_recently_used_evicted(self, clock):
        cache = ResultCache(max_items=2, ttl_seconds=0, clock=clock)
        cache.set("a", b"a")
        cache.set("b", b"b")
        cache.get("a")
        cache.set("c", b"c")

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert cache.stats()["evictions"] == 1

    def test_overwrite_does_not_grow(self, clock):
        cache = ResultCache(max_items=2, clock=clock)
        cache.set("a", b"1")
        cache.set("a", b"2")

        assert len(cache) == 1
        assert cache.get("a")[0] == b"2"

    @pytest.mark.parametrize("max_items", [0, -1])
    def test_invalid_capacity(self, max_items):
        with pytest.raises(ValueError):
            ResultCache(max_items=max_items)


class TestStatsAndMaintenance:
    """Tests for stats(), delete() and clear()."""

    def test_stats(self, clock):
        cache = ResultCache(max_items=5, ttl_seconds=30, clock=clock)
        cache.set("a", b"a")
        cache.get("a")
        cache.get("a")
        cache.get("missing")

        assert cache.stats() == {
            "hits": 2,
            "misses": 1,
            "size": 1,
            "max_items": 5,
            "ttl_seconds": 30,
            "expirations": 0,
            "evictions": 0,
        }

    def test_timings(self, clock):
        cache = ResultCache(clock=clock)
        assert "cache_set" in cache.set("a", b"a")
        _, timings = cache.get("a")
        assert timings["cache_get"] >= 0

    def test_delete(self, clock):
        cache = ResultCache(clock=clock)
        cache.set("a", b"a")

        assert cache.delete("a") is True
        assert cache.delete("a") is False

    def test_clear(self, clock):
        cache = ResultCache(clock=clock)
        for key in "abc":
            cache.set(key, key.encode())

        assert cache.clear() == 3
        assert len(cache) == 0


class TestThreadSafety:
    """Concurrent access keeps the cache consistent."""

    def test_concurrent_set_and_get(self):
        cache = ResultCache(max_items=50, ttl_seconds=60)
        errors = []

        def worker(worker_id):
            try:
                for i in range(200):
                    key = f"{worker_id}-{i % 20}"
                    cache.set(key, key.encode())
                    value, _ = cache.get(key)
                    assert value is None or value == key.encode()
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) <= 50
        stats = cache.stats()
        assert stats["hits"] + stats["misses"] == 8 * 200
