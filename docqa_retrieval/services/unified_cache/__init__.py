"""Unified cache system for the retrieval engine.

Three bounded, time-expiring tiers behind one manager:
- Query (1 hour TTL) - ranked results per normalized query, filters and limit
- Embedding (24 hour TTL) - vectors per normalized text
- Response (30 minute default TTL) - arbitrary caller payloads

Usage:
    from docqa_retrieval.services.unified_cache import CacheManager, CacheConfig

    cache = CacheManager(CacheConfig())

    results = cache.get_query("query text", filters, 10)
    cache.set_query("query text", filters, 10, results)

    cache.set_response("session:42", payload, ttl=600)
"""

from docqa_retrieval.services.unified_cache.key_generator import CacheKeyGenerator, normalize
from docqa_retrieval.services.unified_cache.layered_cache import CacheManager, CacheConfig

__all__ = [
    "CacheKeyGenerator",
    "CacheManager",
    "CacheConfig",
    "normalize",
]
