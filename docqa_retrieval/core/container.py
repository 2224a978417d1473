"""Dependency injection container for the retrieval engine.

Builds the cache manager, document store, embedding provider and engine
once, owns the background cache sweeper, and tears everything down on
shutdown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from docqa_retrieval.core.logging import get_logger, is_configured, setup_logging

if TYPE_CHECKING:
    from docqa_retrieval.core.config import Settings
    from docqa_retrieval.core.interfaces import IDocumentStore, IEmbeddingProvider
    from docqa_retrieval.engine import RetrievalEngine
    from docqa_retrieval.services.unified_cache.layered_cache import CacheManager

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Providers and stores are injected with the ``set_*`` methods before
    ``initialize``. An unset document store defaults to
    ``InMemoryDocumentStore``. An unset embedding provider is an error
    unless ``settings.offline_mode`` selects ``FallbackEmbeddingProvider``.

    Usage:
        container = ServiceContainer()
        container.set_embedding_provider(LangChainEmbeddingProvider(model))
        await container.initialize(settings)

        results = await container.engine.hybrid_search("query")

        await container.shutdown()
    """

    _cache_manager: Optional[CacheManager] = field(default=None, repr=False)
    _document_store: Optional[IDocumentStore] = field(default=None, repr=False)
    _embedding_provider: Optional[IEmbeddingProvider] = field(default=None, repr=False)
    _engine: Optional[RetrievalEngine] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings, start_sweeper: bool = True) -> None:
        """Initialize all services.

        Args:
            settings: Engine settings.
            start_sweeper: Start the periodic cache sweep on the running loop.

        Raises:
            ServiceNotInitializedError: If no embedding provider was set and
                offline mode is off.
            Exception: If any service fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        if not is_configured():
            setup_logging(settings.log_level, settings.log_format)

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            # Import here to avoid circular imports
            from docqa_retrieval.engine import RetrievalEngine
            from docqa_retrieval.services.document_store import InMemoryDocumentStore
            from docqa_retrieval.services.embeddings import FallbackEmbeddingProvider
            from docqa_retrieval.services.unified_cache.layered_cache import CacheConfig, CacheManager

            fallback = FallbackEmbeddingProvider(settings.embedding_dimensions)
            if self._embedding_provider is None:
                if not settings.offline_mode:
                    raise ServiceNotInitializedError("embedding_provider")
                logger.warning("Offline mode: using hash-based fallback embeddings")
                self._embedding_provider = fallback

            self._cache_manager = CacheManager(CacheConfig.from_settings(settings))
            if start_sweeper:
                self._cache_manager.start_sweeper()
            logger.info("Cache manager initialized")

            if self._document_store is None:
                self._document_store = InMemoryDocumentStore()
                logger.info("Using in-memory document store")

            self._engine = RetrievalEngine(
                settings,
                self._embedding_provider,
                self._document_store,
                cache=self._cache_manager,
                fallback_provider=fallback,
            )

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._cache_manager:
            try:
                await self._cache_manager.stop_sweeper()
                self._cache_manager.clear_all()
                logger.info("Cache manager stopped")
            except Exception as e:
                logger.error(f"Error stopping cache manager: {e}")

        if self._engine:
            await self._engine.batch_processor.drain()

        self._engine = None
        self._cache_manager = None
        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get engine settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def cache_manager(self) -> CacheManager:
        if self._cache_manager is None:
            raise ServiceNotInitializedError("cache_manager")
        return self._cache_manager

    @property
    def document_store(self) -> IDocumentStore:
        if self._document_store is None:
            raise ServiceNotInitializedError("document_store")
        return self._document_store

    @property
    def embedding_provider(self) -> IEmbeddingProvider:
        if self._embedding_provider is None:
            raise ServiceNotInitializedError("embedding_provider")
        return self._embedding_provider

    @property
    def engine(self) -> RetrievalEngine:
        """Get the retrieval engine instance."""
        if self._engine is None:
            raise ServiceNotInitializedError("engine")
        return self._engine

    def set_document_store(self, store: IDocumentStore) -> None:
        """Set the document store (before initialize)."""
        self._document_store = store

    def set_embedding_provider(self, provider: IEmbeddingProvider) -> None:
        """Set the embedding provider (before initialize)."""
        self._embedding_provider = provider


def create_container() -> ServiceContainer:
    """Create a new service container instance.

    This is useful for creating isolated containers in tests.

    Returns:
        A new ServiceContainer instance.
    """
    return ServiceContainer()
