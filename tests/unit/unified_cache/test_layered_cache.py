"""Tests for the layered cache manager."""

import asyncio

import pytest

from docqa_retrieval.core.config import Settings
from docqa_retrieval.models.search import SearchFilters, SearchResult
from docqa_retrieval.services.unified_cache.layered_cache import CacheConfig, CacheManager


def _result(chunk_id: str, score: float = 1.0) -> SearchResult:
    return SearchResult(chunk_id=chunk_id, document_id="doc", text="text", score=score)


class TestQueryTier:
    """Tests for ranked result caching."""

    def test_miss_then_hit(self, cache_manager):
        """Test results round-trip and lookups feed metrics."""
        assert cache_manager.get_query("what is rag", None, 10) is None
        cache_manager.set_query("what is rag", None, 10, [_result("a")])

        cached = cache_manager.get_query("What is RAG?", None, 10)
        assert [r.chunk_id for r in cached] == ["a"]

        snapshot = cache_manager.metrics.snapshot()
        assert snapshot.query_count == 2
        assert snapshot.cache_hit_rate == pytest.approx(0.5)

    def test_filters_and_limit_partition_entries(self, cache_manager):
        """Test different filters or limits do not share entries."""
        filters = SearchFilters(document_ids=["doc-1"])
        cache_manager.set_query("q", filters, 10, [_result("a")])

        assert cache_manager.get_query("q", None, 10) is None
        assert cache_manager.get_query("q", filters, 5) is None
        assert cache_manager.get_query("q", filters, 10) is not None

    def test_query_ttl(self, cache_manager, clock):
        """Test query entries expire after the tier TTL."""
        cache_manager.set_query("q", None, 10, [_result("a")])
        clock.advance(30)
        assert cache_manager.get_query("q", None, 10) is None


class TestEmbeddingTier:
    """Tests for embedding caching."""

    def test_round_trip(self, cache_manager):
        """Test a single embedding round-trips."""
        cache_manager.set_embedding("hello", [0.1, 0.2], model="m")
        assert cache_manager.get_embedding("Hello!", model="m") == [0.1, 0.2]
        assert cache_manager.get_embedding("hello", model="other") is None

    def test_embedding_lookups_do_not_count_as_queries(self, cache_manager):
        """Test only query-tier lookups feed the query metrics."""
        cache_manager.get_embedding("x")
        assert cache_manager.metrics.snapshot().query_count == 0


class TestResponseTier:
    """Tests for response payload caching."""

    def test_round_trip_with_custom_ttl(self, cache_manager, clock):
        """Test per-call TTL overrides the default."""
        cache_manager.set_response("session:1", {"answer": 42}, ttl=100)
        clock.advance(50)
        assert cache_manager.get_response("session:1") == {"answer": 42}

    def test_caller_keys_not_merged(self, cache_manager):
        """Test keys differing in case or punctuation hold separate payloads."""
        cache_manager.set_response("user:1", {"owner": "user:1"})
        cache_manager.set_response("user1", {"owner": "user1"})

        assert cache_manager.get_response("user:1") == {"owner": "user:1"}
        assert cache_manager.get_response("user1") == {"owner": "user1"}
        assert cache_manager.get_response("User:1") is None

    def test_default_ttl(self, cache_manager, clock):
        """Test the response tier default TTL."""
        cache_manager.set_response("k", "v")
        clock.advance(15)
        assert cache_manager.get_response("k") is None


class TestMaintenance:
    """Tests for sweep, clear and stats."""

    def test_sweep_all(self, cache_manager, clock, metrics):
        """Test sweep removes expired entries from every tier and refreshes size."""
        cache_manager.set_query("q", None, 10, [])
        cache_manager.set_embedding("t", [1.0])
        cache_manager.set_response("r", "v")
        assert metrics.snapshot().total_cache_size == 3

        clock.advance(31)
        assert cache_manager.sweep_all() == 2
        assert metrics.snapshot().total_cache_size == 1

    def test_clear_all_keeps_counters(self, cache_manager, metrics):
        """Test clearing caches leaves query metrics alone."""
        cache_manager.get_query("q", None, 10)
        cache_manager.set_response("r", "v")
        cache_manager.clear_all()

        assert cache_manager.total_size() == 0
        assert metrics.snapshot().query_count == 1
        assert metrics.snapshot().total_cache_size == 0

    def test_snapshot(self, cache_manager):
        """Test the snapshot reports per-tier sizes."""
        cache_manager.set_query("q", None, 10, [])
        cache_manager.set_embedding("t", [1.0])
        snapshot = cache_manager.snapshot()

        assert snapshot.query_cache_size == 1
        assert snapshot.embedding_cache_size == 1
        assert snapshot.response_cache_size == 0
        assert snapshot.total_cache_size == 2

    def test_capacity_evictions_reported(self, cache_manager):
        """Test evictions are counted across tiers."""
        for i in range(7):
            cache_manager.set_response(f"k{i}", i)
        assert cache_manager.response_cache.size() == 5
        assert cache_manager.stats.total_evictions == 2


class TestSweeper:
    """Tests for the background sweep task."""

    @pytest.mark.asyncio
    async def test_sweeper_removes_expired(self, cache_manager, clock):
        """Test the periodic task sweeps without explicit calls."""
        cache_manager.set_response("k", "v", ttl=1)
        clock.advance(2)

        cache_manager.start_sweeper()
        assert cache_manager.sweeper_running
        await asyncio.sleep(0.05)
        await cache_manager.stop_sweeper()

        assert cache_manager.response_cache.size() == 0
        assert not cache_manager.sweeper_running

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, cache_manager):
        """Test starting an already running sweeper keeps one task."""
        cache_manager.start_sweeper()
        task = cache_manager._sweeper_task
        cache_manager.start_sweeper()
        assert cache_manager._sweeper_task is task
        await cache_manager.stop_sweeper()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cache_manager):
        """Test stopping a sweeper that never started."""
        await cache_manager.stop_sweeper()


class TestCacheConfig:
    """Tests for configuration wiring."""

    def test_from_settings(self):
        """Test settings map onto tier configuration."""
        settings = Settings(query_cache_ttl=10, embedding_cache_max_entries=7, cache_sweep_interval=1.5)
        config = CacheConfig.from_settings(settings)

        assert config.query_ttl == 10
        assert config.embedding_max_entries == 7
        assert config.sweep_interval == 1.5

    def test_defaults(self):
        """Test default tier sizes and TTLs."""
        manager = CacheManager()
        assert manager.query_cache.capacity == 1000
        assert manager.embedding_cache.capacity == 5000
        assert manager.response_cache.capacity == 1000
        assert manager.config.embedding_ttl == 86400
