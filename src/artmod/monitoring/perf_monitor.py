"""
Performance monitoring for the moderation pipeline.

Tracks request, cache hit and error counters, a rolling average of
moderation latency, and per-operation timing statistics. Slow operations are
logged to help identify bottlenecks.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Dict

from artmod.util.logger import get_logger

logger = get_logger("perf_monitor")


class PerformanceMonitor:
    """
    Process-wide counters shared by the cache and the aggregator.

    Records execution times per operation and provides statistics including
    average, min and max times and counts.
    """

    def __init__(self, latency_window: int = 100, slow_operation_ms: float = 10_000.0):
        """
        Initialize the performance monitor.

        Args:
            latency_window: Number of recent moderation latencies averaged
            slow_operation_ms: Threshold in milliseconds for logging slow operations
        """
        self._lock = threading.Lock()
        self._latency_window = latency_window
        self._slow_threshold = slow_operation_ms / 1000.0
        self._latencies: Deque[float] = deque(maxlen=latency_window)
        self._operation_stats: Dict[str, Dict[str, float]] = {}
        self.total_requests = 0
        self.cache_hits = 0
        self.errors = 0

    def record_request(self) -> None:
        with self._lock:
            self.total_requests += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self.cache_hits += 1

    def record_error(self) -> None:
        with self._lock:
            self.errors += 1

    def record_latency(self, duration: float) -> None:
        """Add one moderation latency (seconds) to the rolling window."""
        with self._lock:
            self._latencies.append(duration)

    def track(self, operation: str, duration: float) -> None:
        """
        Track an operation execution.

        Args:
            operation: Name/identifier of the operation
            duration: Execution time in seconds
        """
        with self._lock:
            stats = self._operation_stats.setdefault(
                operation,
                {"count": 0, "total_time": 0.0, "min_time": float("inf"), "max_time": 0.0},
            )
            stats["count"] += 1
            stats["total_time"] += duration
            stats["min_time"] = min(stats["min_time"], duration)
            stats["max_time"] = max(stats["max_time"], duration)

        if duration > self._slow_threshold:
            logger.warning("[PERFORMANCE] Slow operation: %s took %.2fms", operation, duration * 1000)

    @property
    def average_latency(self) -> float:
        """Rolling average moderation latency in seconds."""
        with self._lock:
            if not self._latencies:
                return 0.0
            return sum(self._latencies) / len(self._latencies)

    def get_statistics(self) -> Dict[str, Dict[str, float]]:
        """
        Get per-operation performance statistics.

        Returns:
            Dictionary mapping operation names to their statistics
        """
        with self._lock:
            items = [(name, dict(stats)) for name, stats in self._operation_stats.items()]
        result = {}
        for name, stats in items:
            result[name] = {
                "count": stats["count"],
                "total_time": stats["total_time"],
                "avg_time": stats["total_time"] / stats["count"] if stats["count"] > 0 else 0,
                "min_time": stats["min_time"] if stats["min_time"] != float("inf") else 0,
                "max_time": stats["max_time"],
            }
        return result

    def snapshot(self) -> Dict[str, Any]:
        """Counters and rates for the system status view."""
        average_ms = self.average_latency * 1000
        with self._lock:
            total = self.total_requests
            hits = self.cache_hits
            errors = self.errors
        return {
            "total_requests": total,
            "cache_hits": hits,
            "cache_hit_rate": round(hits / total * 100, 2) if total else 0.0,
            "errors": errors,
            "error_rate": round(errors / total * 100, 2) if total else 0.0,
            "average_processing_ms": round(average_ms, 2),
            "operations": self.get_statistics(),
        }

    def reset(self) -> None:
        """Reset all counters and statistics."""
        with self._lock:
            self._latencies.clear()
            self._operation_stats.clear()
            self.total_requests = 0
            self.cache_hits = 0
            self.errors = 0
        logger.info("[PERFORMANCE] Statistics reset")

    def get_summary(self) -> str:
        """
        Get a human-readable summary of performance statistics.

        Returns:
            Formatted string with performance summary
        """
        snapshot = self.snapshot()
        lines = [
            "Moderation Performance Summary:",
            "=" * 50,
            f"Requests: {snapshot['total_requests']}",
            f"Cache hits: {snapshot['cache_hits']} ({snapshot['cache_hit_rate']}%)",
            f"Errors: {snapshot['errors']} ({snapshot['error_rate']}%)",
            f"Avg latency: {snapshot['average_processing_ms']:.2f}ms (last {self._latency_window})",
        ]
        for name, stats in sorted(snapshot["operations"].items()):
            lines.append(
                f"{name}:\n"
                f"  Count: {stats['count']}\n"
                f"  Avg: {stats['avg_time']*1000:.2f}ms\n"
                f"  Min: {stats['min_time']*1000:.2f}ms\n"
                f"  Max: {stats['max_time']*1000:.2f}ms\n"
                f"  Total: {stats['total_time']:.2f}s"
            )
        return "\n".join(lines)
