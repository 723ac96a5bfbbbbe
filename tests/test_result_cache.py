"""Tests for the moderation result cache."""

from artmod.cache.result_cache import ResultCache
from artmod.monitoring.perf_monitor import PerformanceMonitor


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_returns_value_within_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    cache.set("moderation_full_abc", "result")

    clock.now += 59

    assert cache.get("moderation_full_abc") == "result"


def test_get_expires_at_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    cache.set("k", "v")

    clock.now += 60

    assert cache.get("k") is None
    assert len(cache) == 0


def test_get_missing_key():
    cache = ResultCache()

    assert cache.get("missing") is None


def test_set_overwrites_last_writer_wins():
    cache = ResultCache()
    cache.set("k", "first")
    cache.set("k", "second")

    assert cache.get("k") == "second"
    assert len(cache) == 1


def test_sweep_on_overflow_removes_only_expired_entries():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=100, max_entries=2, clock=clock)
    cache.set("old", 1)
    clock.now += 150
    cache.set("fresh1", 2)
    cache.set("fresh2", 3)

    assert len(cache) == 2
    assert cache.get("old") is None
    assert cache.get("fresh1") == 2


def test_unexpired_entries_are_never_evicted():
    cache = ResultCache(ttl_seconds=100, max_entries=2, clock=FakeClock())
    for index in range(4):
        cache.set(f"k{index}", index)

    assert len(cache) == 4


def test_clear_returns_removed_count():
    cache = ResultCache()
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.clear() == 2
    assert len(cache) == 0
    assert cache.clear() == 0


def test_invalidate_pattern():
    cache = ResultCache()
    cache.set("moderation_full_1", 1)
    cache.set("moderation_full_2", 2)
    cache.set("other", 3)

    assert cache.invalidate("moderation_full_") == 2
    assert cache.get("other") == 3


def test_cache_hits_reported_to_monitor():
    monitor = PerformanceMonitor()
    cache = ResultCache(monitor=monitor)
    cache.set("k", "v")

    cache.get("k")
    cache.get("missing")

    assert monitor.cache_hits == 1


def test_stats():
    cache = ResultCache(ttl_seconds=30, max_entries=5)
    cache.set("k", "v")

    assert cache.get_cache_stats() == {"size": 1, "max_entries": 5, "ttl_seconds": 30}
    assert cache.ttl_seconds == 30
    assert cache.max_entries == 5
