"""Embedding providers.

``LangChainEmbeddingProvider`` adapts any LangChain ``Embeddings`` model to
the engine's provider protocol. ``FallbackEmbeddingProvider`` produces
deterministic pseudo-embeddings from a text hash; it has no semantic meaning
and exists for tests and offline runs only.
"""

import math
from typing import List, Optional

from langchain_core.embeddings import Embeddings

from docqa_retrieval.core.errors import ProviderUnavailableError
from docqa_retrieval.core.logging import get_logger

logger = get_logger(__name__)


def _text_hash(text: str) -> int:
    """32-bit rolling string hash (``h * 31 + c``), returned as its absolute value."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


class FallbackEmbeddingProvider:
    """Deterministic hash-based embeddings.

    Component ``i`` of the vector for ``text`` is ``sin(hash(text) + i) * 0.5``.
    Identical texts always yield identical vectors; different texts yield
    unrelated ones.
    """

    def __init__(self, dimensions: int = 1536):
        if dimensions < 1:
            raise ValueError("dimensions must be at least 1")
        self.dimensions = dimensions

    @property
    def name(self) -> str:
        return f"fallback-hash-{self.dimensions}"

    def embed_sync(self, text: str) -> List[float]:
        seed = _text_hash(text)
        return [math.sin(seed + i) * 0.5 for i in range(self.dimensions)]

    async def embed(self, text: str) -> List[float]:
        return self.embed_sync(text)


class LangChainEmbeddingProvider:
    """Embedding provider backed by a LangChain embeddings model."""

    def __init__(self, embeddings: Embeddings, model_name: Optional[str] = None):
        """Initialize provider.

        Args:
            embeddings: Any LangChain ``Embeddings`` implementation.
            model_name: Name used in cache keys; defaults to the model's
                ``model`` attribute or its class name.
        """
        self.embeddings = embeddings
        self._name = (
            model_name
            or getattr(embeddings, "model", None)
            or type(embeddings).__name__
        )

    @property
    def name(self) -> str:
        return self._name

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises:
            ProviderUnavailableError: If the underlying model call fails.
        """
        try:
            vector = await self.embeddings.aembed_query(text)
        except Exception as e:
            logger.error(f"Embedding provider {self._name} failed: {e}")
            raise ProviderUnavailableError(
                f"Embedding provider failed: {e}", provider=self._name
            ) from e
        return list(vector)
