"""Tests for the metrics tracker."""

import asyncio
import threading

import pytest

from docqa_retrieval.services.performance_monitor import LatencyWindow, MetricsTracker


class TestMetricsTracker:
    """Tests for running query metrics."""

    def test_initial_snapshot(self, metrics):
        """Test a fresh tracker reports zeros."""
        snapshot = metrics.snapshot()
        assert snapshot.query_count == 0
        assert snapshot.cache_hit_rate == 0.0
        assert snapshot.total_cache_size == 0
        assert snapshot.average_response_time_ms == 0.0

    def test_running_hit_rate(self, metrics):
        """Test the hit rate is the running fraction of hits."""
        for hit in (True, False, True, True):
            metrics.record_lookup(hit)

        snapshot = metrics.snapshot()
        assert snapshot.query_count == 4
        assert snapshot.cache_hit_rate == pytest.approx(0.75)

    def test_reset_keeps_cache_size(self, metrics):
        """Test reset zeroes counters but not the cache size gauge."""
        metrics.record_lookup(True)
        metrics.record_response_time(12.0)
        metrics.update_cache_size(42)
        before = metrics.snapshot().last_reset

        metrics.reset()
        snapshot = metrics.snapshot()

        assert snapshot.query_count == 0
        assert snapshot.cache_hit_rate == 0.0
        assert snapshot.average_response_time_ms == 0.0
        assert snapshot.total_cache_size == 42
        assert snapshot.last_reset >= before

    def test_average_response_time(self, metrics):
        """Test response times average over all samples."""
        metrics.record_response_time(10.0)
        metrics.record_response_time(30.0)
        assert metrics.snapshot().average_response_time_ms == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_measure_latency(self, metrics):
        """Test the context manager records elapsed time."""
        async with metrics.measure_latency():
            await asyncio.sleep(0.01)

        snapshot = metrics.snapshot()
        assert snapshot.average_response_time_ms >= 5.0

    def test_concurrent_lookups(self):
        """Test counters stay exact under concurrent updates."""
        tracker = MetricsTracker()

        def worker():
            for _ in range(500):
                tracker.record_lookup(True)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = tracker.snapshot()
        assert snapshot.query_count == 2000
        assert snapshot.cache_hit_rate == pytest.approx(1.0)


class TestLatencyWindow:
    """Tests for the latency accumulator."""

    def test_mean(self):
        """Test the mean covers every recorded sample."""
        window = LatencyWindow("test")
        for value in range(1, 101):
            window.record(float(value))

        assert window.total_count == 100
        assert window.mean == pytest.approx(50.5)

    def test_empty_and_clear(self):
        """Test an empty or cleared window reports zero."""
        window = LatencyWindow("empty")
        assert window.mean == 0.0
        window.record(5.0)
        window.clear()
        assert window.total_count == 0
        assert window.mean == 0.0
