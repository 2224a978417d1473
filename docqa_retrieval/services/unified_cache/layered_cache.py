"""Layered cache manager for the retrieval engine.

Owns three independent bounded tiers:
- Query: ranked search results (1 hour TTL)
- Embedding: text embeddings (24 hour TTL)
- Response: arbitrary caller payloads (30 minute TTL by default)

and a background task that periodically sweeps expired entries from all of
them.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Any, List, Callable

from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import CacheStatsSnapshot, SearchFilters, SearchResult
from docqa_retrieval.services.performance_monitor import MetricsTracker
from docqa_retrieval.services.unified_cache.backends.base import ICacheBackend, CacheStats
from docqa_retrieval.services.unified_cache.backends.memory_backend import MemoryBackend
from docqa_retrieval.services.unified_cache.key_generator import CacheKeyGenerator

logger = get_logger(__name__)


@dataclass
class CacheConfig:
    """Configuration for cache TTLs and capacities."""

    # Query tier - ranked results
    query_ttl: int = 3600  # 1 hour
    query_max_entries: int = 1000

    # Embedding tier - embeddings don't change for the same text
    embedding_ttl: int = 86400  # 24 hours
    embedding_max_entries: int = 5000

    # Response tier - per-call TTL, this is the default
    response_ttl: int = 1800  # 30 minutes
    response_max_entries: int = 1000

    sweep_interval: float = 300.0  # 5 minutes

    embedding_model: str = "default"

    @classmethod
    def from_settings(cls, settings: Any) -> "CacheConfig":
        """Build a cache config from engine settings."""
        return cls(
            query_ttl=settings.query_cache_ttl,
            query_max_entries=settings.query_cache_max_entries,
            embedding_ttl=settings.embedding_cache_ttl,
            embedding_max_entries=settings.embedding_cache_max_entries,
            response_ttl=settings.response_cache_ttl,
            response_max_entries=settings.response_cache_max_entries,
            sweep_interval=settings.cache_sweep_interval,
            embedding_model=settings.embedding_model,
        )


@dataclass
class LayeredCacheStats:
    """Statistics for all cache tiers."""

    query: CacheStats
    embedding: CacheStats
    response: CacheStats

    @property
    def total_evictions(self) -> int:
        return self.query.evictions + self.embedding.evictions + self.response.evictions

    @property
    def total_expired(self) -> int:
        return self.query.expired + self.embedding.expired + self.response.expired


class CacheManager:
    """Three-tier cache with periodic expiry sweeping.

    Query-tier lookups feed the shared ``MetricsTracker``; the tracked total
    cache size is refreshed after every mutation and sweep.

    Usage:
        cache = CacheManager(CacheConfig(), metrics=MetricsTracker())
        cache.start_sweeper()

        results = cache.get_query("what is rag", filters, 10)
        cache.set_query("what is rag", filters, 10, results)

        await cache.stop_sweeper()
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        metrics: Optional[MetricsTracker] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """Initialize cache manager.

        Args:
            config: Optional cache configuration for TTLs and capacities.
            metrics: Tracker updated on query lookups (a private one if omitted).
            clock: Monotonic time source shared by all tiers.
        """
        self.config = config or CacheConfig()
        self.metrics = metrics or MetricsTracker()
        self.key_generator = CacheKeyGenerator

        self.query_cache: ICacheBackend = MemoryBackend(
            "query", self.config.query_max_entries, self.config.query_ttl, clock=clock
        )
        self.embedding_cache: ICacheBackend = MemoryBackend(
            "embedding", self.config.embedding_max_entries, self.config.embedding_ttl, clock=clock
        )
        self.response_cache: ICacheBackend = MemoryBackend(
            "response", self.config.response_max_entries, self.config.response_ttl, clock=clock
        )

        self._sweeper_task: Optional[asyncio.Task] = None

    @property
    def tiers(self) -> List[ICacheBackend]:
        return [self.query_cache, self.embedding_cache, self.response_cache]

    @property
    def stats(self) -> LayeredCacheStats:
        """Get statistics for all cache tiers."""
        return LayeredCacheStats(
            query=self.query_cache.stats,
            embedding=self.embedding_cache.stats,
            response=self.response_cache.stats,
        )

    def total_size(self) -> int:
        return sum(tier.size() for tier in self.tiers)

    def _refresh_size(self) -> None:
        self.metrics.update_cache_size(self.total_size())

    # =========================================================================
    # Query Cache
    # =========================================================================

    def get_query(
        self,
        query: str,
        filters: Optional[SearchFilters],
        limit: int
    ) -> Optional[List[SearchResult]]:
        """Get cached ranked results for a query.

        Every call counts as one lookup in the process-wide metrics.
        """
        key = self.key_generator.query(query, filters, limit)
        results = self.query_cache.get(key)
        self.metrics.record_lookup(hit=results is not None)
        self._refresh_size()

        if results is not None:
            logger.debug(f"Query cache hit: {query[:50]}...")
        return results

    def set_query(
        self,
        query: str,
        filters: Optional[SearchFilters],
        limit: int,
        results: List[SearchResult],
        ttl: Optional[int] = None
    ) -> bool:
        """Cache ranked results for a query."""
        key = self.key_generator.query(query, filters, limit)
        success = self.query_cache.set(key, list(results), ttl)
        self._refresh_size()
        return success

    # =========================================================================
    # Embedding Cache
    # =========================================================================

    def get_embedding(self, text: str, model: Optional[str] = None) -> Optional[List[float]]:
        """Get cached embedding for text."""
        key = self.key_generator.embedding(text, model or self.config.embedding_model)
        embedding = self.embedding_cache.get(key)
        if embedding is not None:
            logger.debug(f"Embedding cache hit: {text[:50]}...")
        return embedding

    def set_embedding(
        self,
        text: str,
        embedding: List[float],
        model: Optional[str] = None
    ) -> bool:
        """Cache embedding for text."""
        key = self.key_generator.embedding(text, model or self.config.embedding_model)
        success = self.embedding_cache.set(key, list(embedding))
        self._refresh_size()
        return success

    # =========================================================================
    # Response Cache
    # =========================================================================

    def get_response(self, key: str) -> Optional[Any]:
        """Get a cached response payload by caller key."""
        return self.response_cache.get(self.key_generator.response(key))

    def set_response(self, key: str, data: Any, ttl: Optional[int] = None) -> bool:
        """Cache a response payload under a caller key.

        Args:
            key: Caller-chosen key, matched exactly.
            data: Any payload.
            ttl: TTL in seconds (None for the tier default).
        """
        success = self.response_cache.set(self.key_generator.response(key), data, ttl)
        self._refresh_size()
        return success

    # =========================================================================
    # Maintenance
    # =========================================================================

    def sweep_all(self) -> int:
        """Remove expired entries from every tier."""
        removed = sum(tier.sweep() for tier in self.tiers)
        self._refresh_size()
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    def clear_all(self) -> None:
        """Empty every tier. Metrics counters are left alone."""
        for tier in self.tiers:
            tier.clear_all()
        self._refresh_size()
        logger.info("All caches cleared")

    def snapshot(self) -> CacheStatsSnapshot:
        """Read-only view of tier sizes and query metrics."""
        metrics = self.metrics.snapshot()
        stats = self.stats
        query_size = self.query_cache.size()
        embedding_size = self.embedding_cache.size()
        response_size = self.response_cache.size()
        return CacheStatsSnapshot(
            query_cache_size=query_size,
            embedding_cache_size=embedding_size,
            response_cache_size=response_size,
            total_cache_size=query_size + embedding_size + response_size,
            cache_hit_rate=metrics.cache_hit_rate,
            query_count=metrics.query_count,
            evictions=stats.total_evictions,
            expired=stats.total_expired,
        )

    # =========================================================================
    # Background sweeper
    # =========================================================================

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            try:
                self.sweep_all()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}", exc_info=True)

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.sweeper_running:
            return
        self._sweeper_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Cache sweeper started (interval {self.config.sweep_interval}s)")

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper_task is None:
            return
        self._sweeper_task.cancel()
        try:
            await self._sweeper_task
        except asyncio.CancelledError:
            pass
        self._sweeper_task = None
        logger.info("Cache sweeper stopped")
