"""Semantic search by cosine similarity over the embedding corpus."""

import time
from typing import List, Optional, Tuple

from docqa_retrieval.components.metadata_enricher import MetadataEnricher
from docqa_retrieval.components.similarity import cosine_similarity
from docqa_retrieval.core.errors import CorpusAccessError, DimensionMismatchError
from docqa_retrieval.core.interfaces import IDocumentStore
from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import EmbeddingRecord, SearchFilters, SearchResult
from docqa_retrieval.services.embedding_cache import CachedEmbeddingService

logger = get_logger(__name__)


def rank_by_score(scored: List[Tuple[EmbeddingRecord, float]]) -> List[Tuple[EmbeddingRecord, float]]:
    """Sort by score descending, breaking ties by chunk id ascending."""
    return sorted(scored, key=lambda item: (-item[1], item[0].chunk_id))


async def load_corpus(
    document_store: IDocumentStore,
    filters: Optional[SearchFilters]
) -> List[EmbeddingRecord]:
    """Read the filtered corpus, mapping any store failure to CorpusAccessError."""
    try:
        return await document_store.list_embeddings(filters)
    except CorpusAccessError:
        raise
    except Exception as e:
        logger.error(f"Failed to read embedding corpus: {e}")
        raise CorpusAccessError(f"Failed to read embedding corpus: {e}", operation="list_embeddings") from e


class VectorSearcher:
    """Exhaustive cosine-similarity search with a score threshold."""

    def __init__(
        self,
        embedding_service: CachedEmbeddingService,
        document_store: IDocumentStore,
        enricher: MetadataEnricher,
        threshold: float = 0.7,
        default_limit: int = 10
    ):
        """Initialize vector searcher.

        Args:
            embedding_service: Cache-through query embedder.
            document_store: Source of the embedding corpus.
            enricher: Attaches citation metadata to hits.
            threshold: Minimum similarity kept when the caller gives none.
            default_limit: Result count when the caller gives none.
        """
        self.embedding_service = embedding_service
        self.document_store = document_store
        self.enricher = enricher
        self.threshold = threshold
        self.default_limit = default_limit

    def score_corpus(
        self,
        query_vector: List[float],
        corpus: List[EmbeddingRecord]
    ) -> List[Tuple[EmbeddingRecord, float]]:
        """Score every record, skipping those whose vectors cannot be compared."""
        scored = []
        skipped = 0
        for record in corpus:
            try:
                score = cosine_similarity(query_vector, record.vector)
            except (DimensionMismatchError, TypeError, ValueError) as e:
                skipped += 1
                logger.warning(f"Skipping chunk {record.chunk_id}: {e}")
                continue
            scored.append((record, score))

        if skipped:
            logger.warning(f"Skipped {skipped} of {len(corpus)} records during scoring")
        return scored

    async def search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        corpus: Optional[List[EmbeddingRecord]] = None
    ) -> List[SearchResult]:
        """Return enriched hits scoring at or above the threshold.

        Args:
            query: Natural-language query.
            filters: Corpus pre-filters, applied when ``corpus`` is not given.
            threshold: Minimum similarity (defaults to the configured one).
            limit: Maximum number of results.
            corpus: Already filtered corpus, to avoid reading the store twice.

        Raises:
            ProviderUnavailableError: If the query cannot be embedded.
            CorpusAccessError: If the corpus cannot be read.
            ValueError: If limit is negative.
        """
        start_time = time.perf_counter()
        threshold = self.threshold if threshold is None else threshold
        limit = self.default_limit if limit is None else limit
        if limit < 0:
            raise ValueError("limit must be non-negative")

        query_vector = await self.embedding_service.embed(query)
        if corpus is None:
            corpus = await load_corpus(self.document_store, filters)

        hits = [
            (record, score)
            for record, score in self.score_corpus(query_vector, corpus)
            if score >= threshold
        ]
        ranked = rank_by_score(hits)[:limit]
        results = await self.enricher.enrich(ranked)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Vector search found {len(results)} results above {threshold} "
            f"from {len(corpus)} chunks in {elapsed_ms:.1f}ms"
        )
        return results
