"""Shared test fixtures for retrieval engine tests."""

import pytest
from typing import Dict, List
from unittest.mock import AsyncMock

from docqa_retrieval.core.config import Settings
from docqa_retrieval.engine import RetrievalEngine
from docqa_retrieval.models.search import DocumentMetadata, EmbeddingRecord
from docqa_retrieval.services.document_store import InMemoryDocumentStore
from docqa_retrieval.services.performance_monitor import MetricsTracker
from docqa_retrieval.services.unified_cache.backends.memory_backend import MemoryBackend
from docqa_retrieval.services.unified_cache.layered_cache import CacheManager, CacheConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticEmbeddingProvider:
    """Provider returning fixed vectors per text, with a default for unknown text."""

    def __init__(self, vectors: Dict[str, List[float]], default: List[float]):
        self.vectors = vectors
        self.default = default
        self.calls: List[str] = []

    @property
    def name(self) -> str:
        return "static-test"

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    """Create a small memory backend driven by the fake clock."""
    return MemoryBackend("test", capacity=3, default_ttl=60, clock=clock)


@pytest.fixture
def cache_config():
    """Create a test cache configuration."""
    return CacheConfig(
        query_ttl=30,
        query_max_entries=5,
        embedding_ttl=60,
        embedding_max_entries=5,
        response_ttl=15,
        response_max_entries=5,
        sweep_interval=0.01,
    )


@pytest.fixture
def metrics():
    """Create a fresh metrics tracker."""
    return MetricsTracker()


@pytest.fixture
def cache_manager(cache_config, metrics, clock):
    """Create a cache manager with small tiers and a fake clock."""
    return CacheManager(cache_config, metrics=metrics, clock=clock)


# ============================================================================
# Corpus Fixtures
# ============================================================================

@pytest.fixture
def test_settings():
    """Settings with no delay between embedding batches."""
    return Settings(embedding_batch_delay=0.0, embedding_dimensions=3)


@pytest.fixture
def sample_records():
    """Three chunks used by the end-to-end scenario."""
    return [
        EmbeddingRecord(
            chunk_id="A",
            document_id="doc-1",
            text="Machine learning is a subset of artificial intelligence.",
            vector=(1.0, 0.0, 0.0),
        ),
        EmbeddingRecord(
            chunk_id="B",
            document_id="doc-1",
            text="Deep learning uses neural networks.",
            vector=(0.0, 1.0, 0.0),
        ),
        EmbeddingRecord(
            chunk_id="C",
            document_id="doc-2",
            text="Cooking recipes for beginners.",
            vector=(0.0, 0.0, 1.0),
        ),
    ]


@pytest.fixture
async def document_store(sample_records):
    """In-memory store loaded with the sample corpus."""
    store = InMemoryDocumentStore()
    await store.add_document(
        DocumentMetadata(
            document_id="doc-1",
            title="Intro to AI",
            author="Ada Lovelace",
            text=" ".join(record.text for record in sample_records[:2]),
        )
    )
    for record in sample_records:
        await store.store_embedding(record)
    return store


@pytest.fixture
def embedding_provider():
    """Provider whose query vector is orthogonal to every sample chunk."""
    return StaticEmbeddingProvider({}, default=[0.0, 0.0, 0.0])


@pytest.fixture
def engine(test_settings, embedding_provider, document_store, cache_manager):
    """Retrieval engine over the sample corpus."""
    return RetrievalEngine(test_settings, embedding_provider, document_store, cache=cache_manager)


# ============================================================================
# Mock Service Fixtures
# ============================================================================

@pytest.fixture
def mock_document_store():
    """Create a mock document store."""
    mock = AsyncMock()
    mock.get_metadata = AsyncMock(return_value=None)
    mock.list_embeddings = AsyncMock(return_value=[])
    mock.store_embedding = AsyncMock()
    mock.count_documents = AsyncMock(return_value=0)
    return mock
