"""Protocol definitions for the engine's external collaborators.

The engine never implements embedding generation or document persistence
itself; these protocols describe what it needs from them so that real
backends and in-memory test doubles can be swapped in.
"""

from typing import Protocol, Optional, List, runtime_checkable

from docqa_retrieval.models.search import DocumentMetadata, EmbeddingRecord, SearchFilters


@runtime_checkable
class IEmbeddingProvider(Protocol):
    """Interface for embedding generation."""

    @property
    def name(self) -> str:
        """Identifier of the model behind the provider."""
        ...

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises:
            ProviderUnavailableError: If the provider cannot be reached.
        """
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """Interface for document and embedding persistence."""

    async def get_metadata(self, document_id: str) -> Optional[DocumentMetadata]:
        """Return document metadata, or None if the document is unknown."""
        ...

    async def list_embeddings(
        self,
        filters: Optional[SearchFilters] = None
    ) -> List[EmbeddingRecord]:
        """Return every embedding record matching the filters.

        Raises:
            CorpusAccessError: If the corpus cannot be read.
        """
        ...

    async def store_embedding(self, record: EmbeddingRecord) -> None:
        """Persist one embedding record."""
        ...

    async def count_documents(self) -> int:
        """Number of documents known to the store."""
        ...
