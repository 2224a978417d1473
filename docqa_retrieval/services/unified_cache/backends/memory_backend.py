"""In-memory cache tier with per-entry TTL and LRU eviction."""

import itertools
import threading
import time
from dataclasses import dataclass
from typing import Optional, Any, Callable, Dict

from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.services.unified_cache.backends.base import ICacheBackend, CacheStats

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A cache entry with creation time, TTL and access bookkeeping."""

    data: Any
    created_at: float
    ttl: float
    last_accessed: float
    access_count: int = 0
    sequence: int = 0

    def is_expired(self, now: float) -> bool:
        """An entry is live strictly before created_at + ttl."""
        return now - self.created_at >= self.ttl


class MemoryBackend(ICacheBackend):
    """Bounded in-memory cache tier.

    Every read-modify-write sequence runs under one lock per tier, so the
    capacity ceiling holds even when ``set`` is called from several
    threads at once: when a new key arrives at a full tier, the entry with
    the oldest ``last_accessed`` is evicted first (ties go to the entry
    inserted earliest) and only then is the new entry inserted.

    Features:
    - TTL per entry, with a tier default
    - Expired entries are dropped on read and by ``sweep()``
    - LRU eviction by last access time
    - Statistics tracking
    """

    def __init__(
        self,
        name: str,
        capacity: int,
        default_ttl: float,
        clock: Optional[Callable[[], float]] = None
    ):
        """Initialize memory backend.

        Args:
            name: Tier name used in logs and stats.
            capacity: Maximum number of entries.
            default_ttl: TTL in seconds used when ``set`` is called without one.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")

        self._name = name
        self._capacity = capacity
        self._default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._storage: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._lock = threading.Lock()
        self._sequence = itertools.count()

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    def _get_locked(self, key: str, now: float) -> Optional[Any]:
        entry = self._storage.get(key)
        if entry is None:
            self._stats.record_miss()
            return None

        if entry.is_expired(now):
            del self._storage[key]
            self._stats.expired += 1
            self._stats.record_miss()
            return None

        entry.last_accessed = now
        entry.access_count += 1
        self._stats.record_hit()
        return entry.data

    def _evict_lru_locked(self) -> None:
        victim_key = min(
            self._storage,
            key=lambda k: (self._storage[k].last_accessed, self._storage[k].sequence)
        )
        del self._storage[victim_key]
        self._stats.evictions += 1
        logger.debug(f"Evicted LRU entry from {self._name} cache")

    def _set_locked(self, key: str, value: Any, ttl: Optional[float], now: float) -> None:
        if key not in self._storage and len(self._storage) >= self._capacity:
            self._evict_lru_locked()

        self._storage[key] = CacheEntry(
            data=value,
            created_at=now,
            ttl=ttl if ttl is not None else self._default_ttl,
            last_accessed=now,
            access_count=0,
            sequence=next(self._sequence),
        )

    def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        try:
            with self._lock:
                return self._get_locked(key, self._clock())
        except Exception as e:
            self._stats.record_error()
            logger.warning(f"{self._name} cache get failed, treating as miss: {e}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None
    ) -> bool:
        """Set a value in the cache, evicting the LRU entry if the tier is full."""
        if ttl is not None and ttl <= 0:
            logger.warning(f"Ignoring non-positive TTL {ttl} for {self._name} cache")
            return False

        try:
            with self._lock:
                self._set_locked(key, value, ttl, self._clock())
            return True
        except Exception as e:
            self._stats.record_error()
            logger.warning(f"{self._name} cache set failed: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete a key from the cache."""
        with self._lock:
            if key in self._storage:
                del self._storage[key]
                return True
            return False

    def exists(self, key: str) -> bool:
        """Check if a live key exists without refreshing it."""
        with self._lock:
            entry = self._storage.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def clear_all(self) -> bool:
        """Clear all keys from the cache."""
        with self._lock:
            self._storage.clear()
        return True

    def sweep(self) -> int:
        """Remove every expired entry regardless of access pattern."""
        try:
            with self._lock:
                now = self._clock()
                expired_keys = [
                    key for key, entry in self._storage.items()
                    if entry.is_expired(now)
                ]
                for key in expired_keys:
                    del self._storage[key]
                self._stats.expired += len(expired_keys)
        except Exception as e:
            self._stats.record_error()
            logger.warning(f"{self._name} cache sweep failed: {e}")
            return 0

        if expired_keys:
            logger.debug(f"Swept {len(expired_keys)} expired entries from {self._name} cache")
        return len(expired_keys)

    def size(self) -> int:
        with self._lock:
            return len(self._storage)

    def __len__(self) -> int:
        return self.size()

    # Inspection utilities

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get a raw cache entry without touching its access bookkeeping."""
        with self._lock:
            return self._storage.get(key)
