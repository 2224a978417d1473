"""Running query and cache metrics for the retrieval engine."""

import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from docqa_retrieval.models.search import Metrics


class LatencyWindow:
    """Running count and sum of latency samples."""

    def __init__(self, name: str):
        """Initialize latency window."""
        self.name = name
        self.total_count = 0
        self.total_sum = 0.0

    def record(self, value: float) -> None:
        """Record a new value."""
        self.total_count += 1
        self.total_sum += value

    @property
    def mean(self) -> float:
        """Mean over every sample since the last clear."""
        if self.total_count == 0:
            return 0.0
        return self.total_sum / self.total_count

    def clear(self) -> None:
        self.total_count = 0
        self.total_sum = 0.0


class MetricsTracker:
    """Process-wide counters updated on every query-cache lookup.

    All mutations happen under a single lock; readers only ever see a
    consistent ``Metrics`` snapshot.
    """

    def __init__(self):
        """Initialize metrics tracker."""
        self._lock = threading.Lock()
        self._query_count = 0
        self._cache_hit_rate = 0.0
        self._total_cache_size = 0
        self._response_times = LatencyWindow("hybrid_search_latency_ms")
        self._last_reset = datetime.now(timezone.utc)

    def record_lookup(self, hit: bool) -> None:
        """Record one query-cache lookup and fold it into the running hit rate."""
        with self._lock:
            self._query_count += 1
            current = 1.0 if hit else 0.0
            self._cache_hit_rate = (
                self._cache_hit_rate * (self._query_count - 1) + current
            ) / self._query_count

    def record_response_time(self, latency_ms: float) -> None:
        """Record the end-to-end latency of a search call."""
        with self._lock:
            self._response_times.record(latency_ms)

    def update_cache_size(self, total_size: int) -> None:
        """Set the total number of entries across all tiers."""
        with self._lock:
            self._total_cache_size = total_size

    @asynccontextmanager
    async def measure_latency(self):
        """Context manager to measure and record search latency."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self.record_response_time((time.perf_counter() - start_time) * 1000)

    def snapshot(self) -> Metrics:
        """Return a read-only copy of the current metrics."""
        with self._lock:
            return Metrics(
                query_count=self._query_count,
                cache_hit_rate=self._cache_hit_rate,
                total_cache_size=self._total_cache_size,
                average_response_time_ms=self._response_times.mean,
                last_reset=self._last_reset,
            )

    def reset(self) -> None:
        """Operator reset. The cache size is a gauge and survives the reset."""
        with self._lock:
            self._query_count = 0
            self._cache_hit_rate = 0.0
            self._response_times.clear()
            self._last_reset = datetime.now(timezone.utc)
