"""Cache tier implementations.

- MemoryBackend: bounded in-process tier with TTL and LRU eviction
"""

from docqa_retrieval.services.unified_cache.backends.base import ICacheBackend, CacheStats
from docqa_retrieval.services.unified_cache.backends.memory_backend import MemoryBackend, CacheEntry

__all__ = [
    "ICacheBackend",
    "CacheStats",
    "MemoryBackend",
    "CacheEntry",
]
