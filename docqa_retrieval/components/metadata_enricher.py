"""Attach citation metadata (title, author, page) to scored chunks."""

import math
from typing import Dict, List, Optional, Tuple

from docqa_retrieval.core.errors import EnrichmentError
from docqa_retrieval.core.interfaces import IDocumentStore
from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import (
    DocumentMetadata,
    EmbeddingRecord,
    ResultMetadata,
    SearchResult,
    UNKNOWN_AUTHOR,
    UNKNOWN_TITLE,
)

logger = get_logger(__name__)

CHARS_PER_PAGE = 2500


def estimate_page(chunk_text: str, full_text: Optional[str], chars_per_page: int = CHARS_PER_PAGE) -> int:
    """Estimate the page a chunk starts on from its offset in the full text.

    Returns 1 when the full text is unknown or does not contain the chunk.
    """
    if not full_text:
        return 1
    offset = full_text.find(chunk_text)
    if offset == -1:
        return 1
    return math.ceil(offset / chars_per_page) + 1


class MetadataEnricher:
    """Turns scored embedding records into ``SearchResult`` objects.

    A failed metadata lookup never fails the search: the result is kept with
    placeholder metadata and the failure is logged.
    """

    def __init__(self, document_store: IDocumentStore, chars_per_page: int = CHARS_PER_PAGE):
        self.document_store = document_store
        self.chars_per_page = chars_per_page

    async def _lookup(self, record: EmbeddingRecord) -> Optional[DocumentMetadata]:
        try:
            return await self.document_store.get_metadata(record.document_id)
        except Exception as e:
            raise EnrichmentError(
                f"Metadata lookup failed: {e}",
                document_id=record.document_id,
                chunk_id=record.chunk_id,
            ) from e

    async def enrich(self, scored: List[Tuple[EmbeddingRecord, float]]) -> List[SearchResult]:
        """Build results in the given order, one metadata lookup per document."""
        documents: Dict[str, Optional[DocumentMetadata]] = {}
        failed = set()
        results = []

        for record, score in scored:
            doc_id = record.document_id
            if doc_id not in documents and doc_id not in failed:
                try:
                    documents[doc_id] = await self._lookup(record)
                except EnrichmentError as e:
                    logger.error(f"Error enriching result for chunk {record.chunk_id}: {e.message}")
                    failed.add(doc_id)

            results.append(
                SearchResult(
                    chunk_id=record.chunk_id,
                    document_id=doc_id,
                    text=record.text,
                    score=score,
                    metadata=self._metadata_for(record, documents.get(doc_id)),
                )
            )

        return results

    def _metadata_for(self, record: EmbeddingRecord, document: Optional[DocumentMetadata]) -> ResultMetadata:
        if document is None:
            return ResultMetadata()
        return ResultMetadata(
            title=document.title or UNKNOWN_TITLE,
            author=document.author or UNKNOWN_AUTHOR,
            page=estimate_page(record.text, document.text, self.chars_per_page),
        )
