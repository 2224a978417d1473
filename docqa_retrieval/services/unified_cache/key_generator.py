"""Unified cache key generation for all cache tiers.

Raw query text is normalized so that trivially different spellings of the
same question share a cache entry. Structured parts of a request (filters,
limits, caller keys) are serialized canonically but never normalized, since
they must match exactly.
"""

import hashlib
import json
import re
from typing import Optional, Dict, Any

from docqa_retrieval.models.search import SearchFilters

MAX_NORMALIZED_LENGTH = 500

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w\s]")


def normalize(raw: str) -> str:
    """Normalize text for use in a cache key.

    Lower-cases, trims, collapses whitespace runs to a single space, strips
    everything that is neither a word character nor whitespace, and
    truncates to 500 characters.
    """
    text = raw.lower().strip()
    text = _WHITESPACE_RE.sub(" ", text)
    text = _NON_WORD_RE.sub("", text)
    return text[:MAX_NORMALIZED_LENGTH]


def canonical_json(data: Any) -> str:
    """Serialize data with sorted keys and compact separators."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


class CacheKeyGenerator:
    """Cache key generation for the query, embedding and response tiers.

    All keys include a version prefix to enable cache invalidation
    when the key format or cached data structure changes.

    Key format: {tier}:{version}:{...params}:{content_hash}

    Examples:
        qry:v1:5f4dcc3b5aa765d61d8327deb882cf99
        emb:v1:text-embedding-3-small:abc123def456
        resp:v1:9e107d9d372bb6826bd81d3542a419d6

    Query texts that normalize alike share a key by intent; hash collisions
    surface as a false cache hit, which is accepted.
    """

    VERSION = "v1"

    QUERY_PREFIX = "qry"
    EMBEDDING_PREFIX = "emb"
    RESPONSE_PREFIX = "resp"

    @classmethod
    def hash_content(cls, content: str) -> str:
        """Generate a hash for arbitrary content.

        Args:
            content: The content to hash.

        Returns:
            MD5 hash string.
        """
        return hashlib.md5(content.encode('utf-8')).hexdigest()

    @classmethod
    def exact(cls, prefix: str, request: Any) -> str:
        """Generate a key for a structured request, matched exactly.

        Args:
            prefix: The tier prefix.
            request: Any JSON-serializable request description.

        Returns:
            Cache key string.
        """
        return f"{prefix}:{cls.VERSION}:{cls.hash_content(prefix + canonical_json(request))}"

    @classmethod
    def composite(cls, prefix: str, request: Any) -> str:
        """Generate a key for a free-form request, normalized before hashing.

        Requests that differ only in case, punctuation or spacing share a key.

        Args:
            prefix: The tier prefix.
            request: Any JSON-serializable request description.

        Returns:
            Cache key string.
        """
        normalized = normalize(canonical_json(request))
        return f"{prefix}:{cls.VERSION}:{cls.hash_content(prefix + normalized)}"

    @classmethod
    def query(
        cls,
        query: str,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None
    ) -> str:
        """Generate cache key for ranked query results.

        Only the query text is normalized; filters and limit match exactly.

        Args:
            query: The search query.
            filters: Optional corpus filters.
            limit: Result limit the ranking was truncated to.

        Returns:
            Cache key string.
        """
        request: Dict[str, Any] = {"query": normalize(query)}
        if filters is not None and not filters.is_empty():
            request["filters"] = filters.cache_payload()
        if limit is not None:
            request["limit"] = limit
        return cls.exact(cls.QUERY_PREFIX, request)

    @classmethod
    def embedding(cls, text: str, model: str = "default") -> str:
        """Generate cache key for embeddings.

        Args:
            text: The text being embedded.
            model: The embedding model name/identifier.

        Returns:
            Cache key string.
        """
        text_hash = cls.hash_content(normalize(text))
        return f"{cls.EMBEDDING_PREFIX}:{cls.VERSION}:{model}:{text_hash}"

    @classmethod
    def response(cls, key: Any) -> str:
        """Generate cache key for a response payload.

        Args:
            key: The caller's key, used verbatim.

        Returns:
            Cache key string.
        """
        return cls.exact(cls.RESPONSE_PREFIX, key)
