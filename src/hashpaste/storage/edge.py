# src/hashpaste/storage/edge.py
"""In-memory edge cache with per-entry TTL and surrogate-key tags.

Stands in for a regional CDN cache in front of the origin store. Content is
immutable once written, so entries never go stale in content, only in
liveness; the core never invalidates individual keys. Operators can drop
whole groups of entries by surrogate key (purge_tag) or everything
(purge_all).

Expiration is lazy: expired entries are removed the first time they are
looked up, or when LRU eviction reaches them. No background task runs.
"""

import threading
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass

from hashpaste.contracts.store import StoredEntry
from hashpaste.core.clock import DEFAULT_CLOCK, Clock
from hashpaste.core.logging import get_logger

__all__ = ["MemoryEdgeCache"]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _CachedEntry:
    entry: StoredEntry
    expires_at: float
    tags: frozenset[str]


class MemoryEdgeCache:
    """Thread-safe LRU cache of StoredEntry values.

    Usage:
        cache = MemoryEdgeCache(max_entries=1024)
        cache.insert("file_abc", entry, ttl_seconds=3600, tags=["hashpaste"])
        cache.lookup("file_abc")        # -> entry
        cache.purge_tag("hashpaste")    # -> 1
    """

    def __init__(self, *, max_entries: int = 1024, clock: Clock | None = None) -> None:
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._entries: OrderedDict[str, _CachedEntry] = OrderedDict()
        self._lock = threading.Lock()

    def lookup(self, key: str) -> StoredEntry | None:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            if cached.expires_at <= self._clock.time():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return cached.entry

    def insert(
        self,
        key: str,
        entry: StoredEntry,
        ttl_seconds: float,
        *,
        tags: Iterable[str] = (),
    ) -> None:
        cached = _CachedEntry(entry, self._clock.time() + ttl_seconds, frozenset(tags))
        with self._lock:
            self._entries[key] = cached
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def purge_tag(self, tag: str) -> int:
        with self._lock:
            doomed = [key for key, cached in self._entries.items() if tag in cached.tags]
            for key in doomed:
                del self._entries[key]
        logger.info("edge.purged", tag=tag, count=len(doomed))
        return len(doomed)

    def purge_all(self) -> int:
        """Drop every cached entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("edge.purged", tag="*", count=count)
        return count

    def __len__(self) -> int:
        """Entries currently held, including expired ones not yet evicted."""
        with self._lock:
            return len(self._entries)
