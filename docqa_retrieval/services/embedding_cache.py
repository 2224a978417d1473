"""Embedding service that consults the embedding cache before the provider."""

from typing import List, Optional

from docqa_retrieval.core.errors import ProviderUnavailableError
from docqa_retrieval.core.interfaces import IEmbeddingProvider
from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.services.unified_cache.layered_cache import CacheManager

logger = get_logger(__name__)


class CachedEmbeddingService:
    """Cache-through wrapper around an embedding provider.

    On provider failure the error propagates unless a fallback provider was
    configured explicitly, in which case the fallback vector is returned.
    Fallback vectors are never cached.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        cache: CacheManager,
        fallback: Optional[IEmbeddingProvider] = None
    ):
        """Initialize embedding service.

        Args:
            provider: Primary embedding provider.
            cache: Cache manager whose embedding tier is used.
            fallback: Provider used when the primary one is unavailable.
        """
        self.provider = provider
        self.cache = cache
        self.fallback = fallback

    async def embed(self, text: str) -> List[float]:
        """Get the embedding for text, from cache when possible.

        Raises:
            ProviderUnavailableError: If the provider fails and no fallback is set.
        """
        cached = self.cache.get_embedding(text, self.provider.name)
        if cached is not None:
            return cached

        try:
            embedding = await self.provider.embed(text)
        except ProviderUnavailableError:
            if self.fallback is None:
                raise
            logger.warning(
                f"Provider {self.provider.name} unavailable, using {self.fallback.name}"
            )
            return await self.fallback.embed(text)

        self.cache.set_embedding(text, embedding, self.provider.name)
        return embedding
