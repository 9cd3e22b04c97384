# src/hashpaste/contracts/store.py
"""Storage protocols for the origin tier and the edge cache.

Both tiers speak the same small vocabulary (lookup, insert with TTL) so
either can be swapped or mocked independently. Implementations live in
hashpaste.storage.

Consolidated here to avoid circular imports between storage and core.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

# Keys in StoredEntry.metadata written by the lifecycle manager
METADATA_HASH = "hash"
METADATA_MIME_TYPE = "mime_type"


@dataclass(frozen=True, slots=True)
class StoredEntry:
    """Content and its side metadata, returned atomically by a store.

    Returning both in one value avoids partial reads where content and
    metadata come from different writes.
    """

    content: bytes
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view so cached entries can be shared between requests
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def size(self) -> int:
        return len(self.content)


@runtime_checkable
class OriginStore(Protocol):
    """Durable key/value tier with per-key TTL and small side metadata.

    The origin store is the system of record. Expiry is store-managed:
    an expired key behaves exactly like a missing one.

    All methods raise StoreUnavailableError on backend failure and
    MetadataCorruptError when stored metadata cannot be decoded.
    """

    def lookup(self, key: str) -> StoredEntry | None:
        """Read content and metadata for an exact key.

        Returns:
            The live entry, or None if absent or expired.
        """
        ...

    def insert(
        self,
        key: str,
        content: bytes,
        metadata: Mapping[str, Any],
        ttl_seconds: float | None,
    ) -> bool:
        """Write an entry only if no live entry exists under key.

        Args:
            key: Namespaced key
            content: Content bytes
            metadata: JSON-serializable side metadata
            ttl_seconds: Lifetime from now, or None for no expiry

        Returns:
            True if this call created the entry, False if a live entry
            already existed (content is never overwritten).
        """
        ...

    def append(
        self,
        key: str,
        data: bytes,
        *,
        metadata: Mapping[str, Any] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        """Append bytes to an entry, creating it if absent or expired.

        Args:
            key: Namespaced key
            data: Bytes to append (may be empty)
            metadata: Replacement metadata, or None to keep the existing metadata
            ttl_seconds: New lifetime from now, or None for no expiry
        """
        ...

    def touch(self, key: str, ttl_seconds: float) -> bool:
        """Extend a live entry's expiry without rewriting its content.

        Returns:
            True if a live entry was extended, False if absent or expired.
        """
        ...


@runtime_checkable
class EdgeCache(Protocol):
    """Fast regional read-through cache in front of the origin store.

    A miss is not an error. Cached entries may outlive the origin entry
    they were copied from.
    """

    def lookup(self, key: str) -> StoredEntry | None:
        """Return the cached entry, or None on miss or expiry."""
        ...

    def insert(
        self,
        key: str,
        entry: StoredEntry,
        ttl_seconds: float,
        *,
        tags: Iterable[str] = (),
    ) -> None:
        """Cache an entry for ttl_seconds, labelled with surrogate keys."""
        ...

    def purge_tag(self, tag: str) -> int:
        """Drop every entry labelled with tag.

        Returns:
            Number of entries removed
        """
        ...
