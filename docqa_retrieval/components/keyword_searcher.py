"""Lexical search by query-token containment."""

from typing import List, Optional

from docqa_retrieval.components.metadata_enricher import MetadataEnricher
from docqa_retrieval.components.vector_searcher import load_corpus, rank_by_score
from docqa_retrieval.core.interfaces import IDocumentStore
from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import EmbeddingRecord, SearchFilters, SearchResult

logger = get_logger(__name__)


def tokenize(query: str, min_length: int = 3) -> List[str]:
    """Lower-cased whitespace tokens of at least ``min_length`` characters."""
    return [token for token in query.lower().split() if len(token) >= min_length]


def keyword_score(tokens: List[str], text: str) -> float:
    """Fraction of tokens that occur as substrings of the lower-cased text."""
    if not tokens:
        return 0.0
    lowered = text.lower()
    matched = sum(1 for token in tokens if token in lowered)
    return matched / len(tokens)


class KeywordSearcher:
    """Scores every chunk by the share of query tokens it contains.

    There is no threshold and no limit: every chunk with a non-zero score
    is returned.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        enricher: MetadataEnricher,
        min_token_length: int = 3
    ):
        self.document_store = document_store
        self.enricher = enricher
        self.min_token_length = min_token_length

    async def search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        corpus: Optional[List[EmbeddingRecord]] = None
    ) -> List[SearchResult]:
        """Return enriched keyword hits, best first.

        Raises:
            CorpusAccessError: If the corpus cannot be read.
        """
        tokens = tokenize(query, self.min_token_length)
        if not tokens:
            logger.debug("Keyword search skipped: no usable query tokens")
            return []

        if corpus is None:
            corpus = await load_corpus(self.document_store, filters)

        hits = []
        for record in corpus:
            score = keyword_score(tokens, record.text)
            if score > 0:
                hits.append((record, score))

        results = await self.enricher.enrich(rank_by_score(hits))
        logger.info(f"Keyword search matched {len(results)} of {len(corpus)} chunks")
        return results
