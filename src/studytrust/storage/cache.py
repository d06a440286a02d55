"""
Analysis Cache

Content-addressed, TTL-based memoization of the external analysis step.

Entries are immutable once written and replaced wholesale on `set`.
Expired entries are evicted lazily by `get`; `clear_expired` is an optional
sweep. There is no size bound and no persistence across restarts.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Generic, TypeVar

from studytrust.core.exceptions import CacheError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 24 * 60 * 60
KEY_PREFIX = "analysis:"


def make_cache_key(input_type: str, content: str) -> str:
    """
    Cache key for a raw request.

    Only the input type and raw content take part, so identical inputs share
    a slot regardless of what extraction later produces.
    """
    digest = hashlib.sha256(f"{input_type}:{content}".encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cache entry with its write and expiry timestamps."""

    data: T
    timestamp: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class AnalysisCache(Generic[T]):
    """
    Thread-safe TTL cache.

    Constructed once per process and injected into the pipeline.

    Features:
        - Lazy eviction on read
        - Wholesale overwrite on write
        - Injectable clock for deterministic tests
        - Hit/miss statistics
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of every entry.
            clock: Returns the current time in seconds.
        """
        if ttl_seconds <= 0:
            raise CacheError("Cache TTL must be positive", {"ttl_seconds": ttl_seconds})
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> T | None:
        """
        Get value from cache.

        Returns None if not found or expired; expired entries are removed.
        """
        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                logger.debug("Cache entry expired: %s", key)
                return None

            self._hits += 1
            return entry.data

    def set(self, key: str, value: T) -> None:
        """Store value, replacing any previous entry for the key."""
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(data=value, timestamp=now, expires_at=now + self._ttl)

    def delete(self, key: str) -> bool:
        """Delete entry from cache."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries and statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def clear_expired(self) -> int:
        """Remove expired entries. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Removed %d expired cache entries", len(expired))
        return len(expired)

    @property
    def size(self) -> int:
        """Current cache size, including not yet evicted expired entries."""
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0.0,
            }
