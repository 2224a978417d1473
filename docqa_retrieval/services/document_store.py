"""In-memory document and embedding store."""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import DocumentMetadata, EmbeddingRecord, SearchFilters

logger = get_logger(__name__)


class InMemoryDocumentStore:
    """Document store holding metadata and embeddings in process memory.

    Embeddings are kept in insertion order keyed by chunk id; storing a
    record with an existing chunk id replaces it.
    """

    def __init__(self):
        self._documents: Dict[str, DocumentMetadata] = {}
        self._embeddings: Dict[str, EmbeddingRecord] = {}
        self._lock = asyncio.Lock()

    async def add_document(self, metadata: DocumentMetadata) -> None:
        async with self._lock:
            self._documents[metadata.document_id] = metadata

    async def get_metadata(self, document_id: str) -> Optional[DocumentMetadata]:
        return self._documents.get(document_id)

    async def store_embedding(self, record: EmbeddingRecord) -> None:
        async with self._lock:
            self._embeddings[record.chunk_id] = record

    async def count_documents(self) -> int:
        document_ids = set(self._documents)
        document_ids.update(record.document_id for record in self._embeddings.values())
        return len(document_ids)

    async def list_embeddings(
        self,
        filters: Optional[SearchFilters] = None
    ) -> List[EmbeddingRecord]:
        """Return embedding records matching every given filter.

        Author and date filters are resolved through document metadata; a
        document without an author or date never matches those filters.
        The date falls back to the record's ``created_at`` when the document
        has none.
        """
        records = list(self._embeddings.values())
        if filters is None or filters.is_empty():
            return records

        return [record for record in records if self._matches(record, filters)]

    def _matches(self, record: EmbeddingRecord, filters: SearchFilters) -> bool:
        if filters.document_ids and record.document_id not in filters.document_ids:
            return False

        metadata = self._documents.get(record.document_id)

        if filters.authors:
            if metadata is None or metadata.author not in filters.authors:
                return False

        if filters.date_range is not None:
            date: Optional[datetime] = metadata.date if metadata else None
            if date is None:
                date = record.created_at
            if not filters.date_range.contains(date):
                return False

        return True

    async def clear(self) -> None:
        async with self._lock:
            self._documents.clear()
            self._embeddings.clear()
        logger.info("Document store cleared")
