"""
Result Cache: In-Memory LRU with Sliding TTL.

Memoizes complete synthesis results keyed by the article link, so a
second request for the same article returns the stored audio without
normalizing, detecting, synthesizing or charging usage again.

    - LRU eviction once max_items is exceeded
    - Sliding TTL: every hit refreshes the entry; an entry expires only
      after ttl_seconds without being read
    - Thread-safe (one lock around the ordered dict)
    - Hit/miss/expiration/eviction statistics

The cache is owned by the TTSService that constructs it. Two concurrent
misses for the same link may both synthesize and both write; the second
write simply replaces the first.

Example:
    >>> cache = ResultCache(max_items=100, ttl_seconds=3600)
    >>> cache.set("https://blog.example/post-1", result)
    >>> value, timings = cache.get("https://blog.example/post-1")
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from feedtape_tts.core.config import Defaults
from feedtape_tts.core.logging import debug, get_logger, info, verbose
from feedtape_tts.utils.timeit import timeit

_LOG = get_logger("feedtape-tts.cache")

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """
    A cached value.

    Attributes:
        value: The stored result.
        created_at: Clock reading when the entry was written.
        last_access: Clock reading of the last write or hit.
    """
    value: V
    created_at: float
    last_access: float


class ResultCache(Generic[V]):
    """
    Thread-safe LRU cache with idle-time expiration.

    Args:
        max_items: Capacity; the least recently used entry is evicted beyond it.
        ttl_seconds: Idle time after which an entry expires (0 = never).
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_items: int = Defaults.CACHE_MAX_ITEMS,
        ttl_seconds: int = Defaults.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if int(max_items) < 1:
            raise ValueError(f"max_items must be positive, got {max_items}")
        self.max_items = int(max_items)
        self.ttl_seconds = int(ttl_seconds)
        self._clock = clock

        self._d: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0

    def _expired(self, entry: CacheEntry[V], now: float) -> bool:
        return self.ttl_seconds > 0 and now - entry.last_access > self.ttl_seconds

    def get(self, key: str) -> tuple[Optional[V], Dict[str, float]]:
        """
        Look up a value and refresh its idle timer.

        Returns:
            Tuple of (value or None, timing dict with 'cache_get').
        """
        timings: Dict[str, float] = {}
        value: Optional[V] = None

        with timeit("cache_get") as t:
            with self._lock:
                now = self._clock()
                entry = self._d.get(key)
                if entry is None:
                    self._misses += 1
                elif self._expired(entry, now):
                    del self._d[key]
                    self._expirations += 1
                    self._misses += 1
                    verbose(_LOG, "expired", key=key, idle=round(now - entry.last_access, 1))
                else:
                    entry.last_access = now
                    self._d.move_to_end(key)
                    self._hits += 1
                    value = entry.value

        timings["cache_get"] = t.seconds
        if value is not None:
            info(_LOG, "hit", key=key, seconds=round(t.seconds, 5))
        else:
            debug(_LOG, "miss", key=key)
        return value, timings

    def set(self, key: str, value: V) -> Dict[str, float]:
        """
        Store a value, evicting least recently used entries over capacity.

        Returns:
            Timing dict with 'cache_set'.
        """
        timings: Dict[str, float] = {}

        with timeit("cache_set") as t:
            with self._lock:
                now = self._clock()
                self._d[key] = CacheEntry(value=value, created_at=now, last_access=now)
                self._d.move_to_end(key)
                while len(self._d) > self.max_items:
                    self._d.popitem(last=False)
                    self._evictions += 1

        timings["cache_set"] = t.seconds
        verbose(_LOG, "set", key=key, seconds=round(t.seconds, 5))
        return timings

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._d:
                del self._d[key]
                return True
            return False

    def clear(self) -> int:
        """Remove every entry; returns how many were removed."""
        with self._lock:
            count = len(self._d)
            self._d.clear()
            return count

    def cleanup_expired(self) -> int:
        """
        Drop entries idle for longer than the TTL.

        Expired entries are otherwise only removed when looked up.

        Returns:
            Number of entries removed.
        """
        if self.ttl_seconds <= 0:
            return 0

        with self._lock:
            now = self._clock()
            expired_keys = [key for key, entry in self._d.items() if self._expired(entry, now)]
            for key in expired_keys:
                del self._d[key]
            self._expirations += len(expired_keys)

        if expired_keys:
            verbose(_LOG, "cleanup", removed=len(expired_keys))
        return len(expired_keys)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._d),
                "max_items": self.max_items,
                "ttl_seconds": self.ttl_seconds,
                "expirations": self._expirations,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)

    def __contains__(self, key: str) -> bool:
        """Presence check without touching the idle timer or expiring."""
        with self._lock:
            return key in self._d
