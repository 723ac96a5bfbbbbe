"""
Moderation result caching.

Provides a TTL-based cache keyed by content fingerprint so repeated
moderation of the same image within the TTL skips every analyzer.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

from artmod.datatypes.moderation_datatypes import CacheEntry
from artmod.monitoring.perf_monitor import PerformanceMonitor
from artmod.util.logger import get_logger

logger = get_logger("result_cache")

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 1000


class ResultCache:
    """
    TTL-based cache for moderation results.

    Entries are checked against the TTL on every read and evicted lazily when
    stale. When a write pushes the cache past ``max_entries`` the expired
    entries are swept in bulk; entries still within their TTL are never
    evicted, so the cache may temporarily exceed the ceiling.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        monitor: Optional[PerformanceMonitor] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the result cache.

        Args:
            ttl_seconds: Time-to-live in seconds for cached entries (default: 24 hours)
            max_entries: Size ceiling that triggers a sweep of expired entries
            monitor: Optional performance monitor notified of cache hits
            clock: Time source returning epoch seconds
        """
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._monitor = monitor
        self._clock = clock

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get(self, cache_key: str) -> Optional[Any]:
        """
        Get a cached value if still valid.

        Returns:
            Cached value if valid, None if expired or not found
        """
        with self._lock:
            entry = self._cache.get(cache_key)
            if entry is None:
                return None
            if entry.is_expired(self._clock(), self._ttl_seconds):
                del self._cache[cache_key]
                logger.debug("[CACHE] Expired key: %s", cache_key)
                return None

        logger.debug("[CACHE] Hit for key: %s", cache_key)
        if self._monitor is not None:
            self._monitor.record_cache_hit()
        return entry.value

    def set(self, cache_key: str, value: Any) -> None:
        """Store a value with the current timestamp (last writer wins)."""
        with self._lock:
            self._cache[cache_key] = CacheEntry(key=cache_key, value=value, stored_at=self._clock())
            oversized = len(self._cache) > self._max_entries
        logger.debug("[CACHE] Set key: %s", cache_key)

        if oversized:
            self.evict_expired()

    def evict_expired(self) -> int:
        """
        Remove every entry older than the TTL.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._cache.items() if entry.is_expired(now, self._ttl_seconds)]
            for key in stale:
                del self._cache[key]
            remaining = len(self._cache)

        if stale:
            logger.info("[CACHE] Swept %d expired entries (%d remaining)", len(stale), remaining)
        return len(stale)

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """
        Invalidate cache entries matching a pattern.

        Args:
            pattern: Substring to match in cache keys.
                    If None, clears all cache entries.

        Returns:
            Number of entries invalidated
        """
        with self._lock:
            if pattern is None:
                count = len(self._cache)
                self._cache.clear()
            else:
                keys_to_delete = [k for k in self._cache if pattern in k]
                for key in keys_to_delete:
                    del self._cache[key]
                count = len(keys_to_delete)

        logger.info("[CACHE] Cleared %d entries%s", count, f" matching '{pattern}'" if pattern else "")
        return count

    def clear(self) -> int:
        """Remove every entry and return how many were removed."""
        return self.invalidate()

    def get_cache_stats(self) -> Dict[str, float]:
        with self._lock:
            size = len(self._cache)
        return {
            "size": size,
            "max_entries": self._max_entries,
            "ttl_seconds": self._ttl_seconds,
        }
