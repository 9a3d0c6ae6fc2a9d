"""
In-memory caching for chartlens.

This module provides a process-scoped response cache so that re-analysing the
same chart with the same prompt does not hit the inference API again. Entries
are bounded by count (least-recently-used eviction) and by age (TTL checked on
access and purged opportunistically on writes). Nothing is persisted.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from chartlens.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 60 * 60


@dataclass(frozen=True)
class CacheEntry:
    """A cached analysis text and the time it was stored."""

    key: str
    value: str
    inserted_at: float


class ResponseCache:
    """LRU cache of analysis results with a fixed time-to-live."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            max_entries: Maximum number of entries kept; oldest-used evicted first
            ttl: Seconds an entry stays valid after insertion
            clock: Monotonic time source (injectable for tests)
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at >= self.ttl

    def get(self, key: str) -> str | None:
        """
        Retrieve a cached analysis.

        Args:
            key: Cache key from build_cache_key()

        Returns:
            The cached text, or None if missing or expired
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[key]
            logger.debug("Cache entry expired key=%s", key[:24])
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: str) -> None:
        """
        Store an analysis, replacing any previous entry for the key.

        Args:
            key: Cache key from build_cache_key()
            value: Analysis text to cache
        """
        now = self._clock()
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now)
        self.purge_expired()
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache evicted key=%s", evicted[:24])

    def purge_expired(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        stale = [k for k, e in self._entries.items() if self._expired(e, now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def delete(self, key: str) -> None:
        """Remove one entry if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cached responses."""
        self._entries.clear()

    def size(self) -> int:
        """
        Get the number of stored entries (expired ones included until purged).

        Returns:
            Number of items in cache
        """
        return len(self._entries)

    def keys(self) -> list[str]:
        """Return keys from least to most recently used."""
        return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
