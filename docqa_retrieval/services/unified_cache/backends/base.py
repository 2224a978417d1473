"""Base interface for cache tier backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0
    expired: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.misses += 1

    def record_error(self) -> None:
        """Record a cache error."""
        self.errors += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.evictions = 0
        self.expired = 0


class ICacheBackend(ABC):
    """Abstract base class for a single cache tier.

    Implementations must never raise from these methods: an internal
    fault is reported as a miss (or a failed write) and counted in
    ``stats.errors``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Tier name used in logs and stats."""
        ...

    @property
    @abstractmethod
    def capacity(self) -> int:
        """Maximum number of entries the tier may hold."""
        ...

    @property
    @abstractmethod
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if absent or expired.
        """
        ...

    @abstractmethod
    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None
    ) -> bool:
        """Set a value in the cache.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl: Time-to-live in seconds (None for the tier default).

        Returns:
            True if successful, False otherwise.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key from the cache.

        Returns:
            True if deleted, False if key didn't exist.
        """
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a live (unexpired) key exists without touching it."""
        ...

    @abstractmethod
    def clear_all(self) -> bool:
        """Clear all keys from the cache."""
        ...

    @abstractmethod
    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        ...

    @abstractmethod
    def size(self) -> int:
        """Number of entries currently stored (expired or not)."""
        ...
