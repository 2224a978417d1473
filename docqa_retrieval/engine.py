"""Retrieval engine facade.

Wires the searchers, fuser, caches and metrics together behind the
operations callers use: hybrid, vector and keyword search, response
caching, embedding generation and operator statistics.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from docqa_retrieval.components.batch_processor import BatchProcessor
from docqa_retrieval.components.hybrid_fuser import HybridFuser
from docqa_retrieval.components.keyword_searcher import KeywordSearcher
from docqa_retrieval.components.metadata_enricher import MetadataEnricher
from docqa_retrieval.components.vector_searcher import VectorSearcher, load_corpus
from docqa_retrieval.core.config import Settings
from docqa_retrieval.core.interfaces import IDocumentStore, IEmbeddingProvider
from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import (
    EmbeddingRecord,
    Metrics,
    SearchFilters,
    SearchResult,
    TextChunk,
)
from docqa_retrieval.services.embedding_cache import CachedEmbeddingService
from docqa_retrieval.services.unified_cache.layered_cache import CacheConfig, CacheManager

logger = get_logger(__name__)


class RetrievalEngine:
    """Hybrid retrieval over a pre-embedded corpus.

    Usage:
        cache = CacheManager(CacheConfig.from_settings(settings))
        engine = RetrievalEngine(settings, provider, store, cache)

        results = await engine.hybrid_search("machine learning", limit=5)
    """

    def __init__(
        self,
        settings: Settings,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        cache: Optional[CacheManager] = None,
        fallback_provider: Optional[IEmbeddingProvider] = None
    ):
        """Initialize retrieval engine.

        Args:
            settings: Engine settings.
            embedding_provider: Provider used for queries and chunks.
            document_store: Corpus and metadata source.
            cache: Cache manager; a new one is built from settings if omitted.
            fallback_provider: Used on provider failure only when
                ``settings.embedding_fallback_on_error`` is set.
        """
        self.settings = settings
        self.document_store = document_store
        self.cache = cache or CacheManager(CacheConfig.from_settings(settings))
        self.metrics = self.cache.metrics

        fallback = fallback_provider if settings.embedding_fallback_on_error else None
        self.embedding_provider = embedding_provider
        self.embedding_service = CachedEmbeddingService(embedding_provider, self.cache, fallback=fallback)

        enricher = MetadataEnricher(document_store, chars_per_page=settings.chars_per_page)
        self.vector_searcher = VectorSearcher(
            self.embedding_service,
            document_store,
            enricher,
            threshold=settings.similarity_threshold,
            default_limit=settings.default_limit,
        )
        self.keyword_searcher = KeywordSearcher(
            document_store,
            enricher,
            min_token_length=settings.keyword_min_token_length,
        )
        self.fuser = HybridFuser(settings.vector_weight, settings.keyword_weight)
        self.batch_processor = BatchProcessor(
            batch_size=settings.embedding_batch_size,
            delay_between_batches=settings.embedding_batch_delay,
            timeout_ms=settings.operation_timeout_ms,
        )

    # =========================================================================
    # Search
    # =========================================================================

    async def hybrid_search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None
    ) -> List[SearchResult]:
        """Fused vector and keyword search, served from the query cache when possible.

        Raises:
            ProviderUnavailableError: If the query cannot be embedded.
            CorpusAccessError: If the corpus cannot be read.
            ValueError: If limit is negative.
        """
        limit = self.settings.default_limit if limit is None else limit
        if limit < 0:
            raise ValueError("limit must be non-negative")

        async with self.metrics.measure_latency():
            cached = self.cache.get_query(query, filters, limit)
            if cached is not None:
                logger.info(f"Hybrid search served from cache: {query[:50]}")
                return list(cached)

            corpus = await load_corpus(self.document_store, filters)
            vector_results, keyword_results = await asyncio.gather(
                self.vector_searcher.search(query, limit=limit, corpus=corpus),
                self.keyword_searcher.search(query, corpus=corpus),
            )
            results = self.fuser.fuse(vector_results, keyword_results, limit=limit)

            self.cache.set_query(query, filters, limit, results)
            logger.info(
                f"Hybrid search returned {len(results)} results "
                f"({len(vector_results)} vector, {len(keyword_results)} keyword)"
            )
            return results

    async def search_similar(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        threshold: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[SearchResult]:
        """Vector-only search; not cached."""
        return await self.vector_searcher.search(query, filters, threshold=threshold, limit=limit)

    async def keyword_search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None
    ) -> List[SearchResult]:
        """Keyword-only search; not cached."""
        return await self.keyword_searcher.search(query, filters)

    # =========================================================================
    # Response cache
    # =========================================================================

    def get_cached_response(self, key: str) -> Optional[Any]:
        return self.cache.get_response(key)

    def set_cached_response(self, key: str, data: Any, ttl: Optional[int] = None) -> bool:
        return self.cache.set_response(key, data, ttl)

    # =========================================================================
    # Embedding generation
    # =========================================================================

    async def generate_embeddings(
        self,
        chunks: Sequence[TextChunk],
        document_id: str
    ) -> List[EmbeddingRecord]:
        """Embed and store a document's chunks in rate-limited batches.

        A chunk that fails to embed or store, or misses the operation
        deadline, is logged and skipped; the
        remaining chunks are still processed.
        """
        logger.info(f"Generating embeddings for {len(chunks)} chunks of document {document_id}")

        async def embed_chunk(chunk: TextChunk) -> Optional[EmbeddingRecord]:
            try:
                vector = await self.batch_processor.with_timeout(
                    self.embedding_service.embed(chunk.text),
                    operation_name=f"embed chunk {chunk.id}",
                )
                record = EmbeddingRecord(
                    chunk_id=chunk.id,
                    document_id=document_id,
                    text=chunk.text,
                    vector=tuple(vector),
                    created_at=datetime.now(timezone.utc),
                )
                await self.document_store.store_embedding(record)
                return record
            except Exception as e:
                logger.error(f"Error generating embedding for chunk {chunk.id}: {e}")
                return None

        produced = await self.batch_processor.parallel_process(list(chunks), embed_chunk)
        records = [record for record in produced if record is not None]

        logger.info(f"Stored {len(records)} of {len(chunks)} embeddings for document {document_id}")
        return records

    # =========================================================================
    # Operator surface
    # =========================================================================

    def get_cache_stats(self) -> Metrics:
        """Snapshot of query count, hit rate, cache size and response time."""
        self.metrics.update_cache_size(self.cache.total_size())
        return self.metrics.snapshot()

    def clear_all_caches(self) -> None:
        self.cache.clear_all()

    def reset_metrics(self) -> None:
        self.metrics.reset()
        logger.info("Retrieval metrics reset")

    async def get_search_stats(self) -> Dict[str, Any]:
        """Corpus size statistics.

        Raises:
            CorpusAccessError: If the corpus cannot be read.
        """
        embeddings = await load_corpus(self.document_store, None)
        total_documents = await self.document_store.count_documents()
        total_embeddings = len(embeddings)

        return {
            "total_embeddings": total_embeddings,
            "total_documents": total_documents,
            "average_embeddings_per_document": (
                total_embeddings / total_documents if total_documents else 0.0
            ),
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }
