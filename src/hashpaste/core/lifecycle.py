# src/hashpaste/core/lifecycle.py
"""Paste lifecycle: put/get orchestration across the origin and edge tiers.

Per identifier, the observable states are

    ABSENT -> (write) -> LIVE_ORIGIN -> (read, cache miss) -> LIVE_ORIGIN+CACHED
           -> (origin TTL elapses) -> CACHED_ONLY -> (cache TTL elapses) -> ABSENT

and nothing beyond store presence is persisted. Re-uploading identical
content from ABSENT or CACHED_ONLY restores LIVE_ORIGIN under the same
identifier.

Writes are idempotent by construction: identical bytes give an identical
key, and the origin store only inserts when no live entry exists. No locks
are taken here; concurrent identical uploads resolve to a single entry.

Failure handling:
- Upload: origin failures propagate as StoreUnavailableError (server error)
- Download: origin failures degrade to PasteNotFoundError, edge cache
  failures degrade to a cache miss
- Stored metadata that cannot be trusted raises MetadataCorruptError
- Nothing is retried here; clients can always re-upload safely
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import quote

from hashpaste.contracts.enums import HashEncoding, RetentionPolicy, Tier
from hashpaste.contracts.errors import (
    EmptyPasteError,
    IntegrityError,
    MetadataCorruptError,
    PasteNotFoundError,
    PasteTooLargeError,
    PasteTooSmallError,
    StoreUnavailableError,
)
from hashpaste.contracts.store import METADATA_HASH, METADATA_MIME_TYPE, EdgeCache, OriginStore, StoredEntry
from hashpaste.core.clock import Clock
from hashpaste.core.config import HashpasteSettings, LimitSettings, RetentionSettings
from hashpaste.core.counter import UploadCounter
from hashpaste.core.fingerprint import Fingerprint, Fingerprinter, fingerprint
from hashpaste.core.logging import get_logger
from hashpaste.core.mime import DEFAULT_MIME_TYPE, detect_mime_type

__all__ = [
    "CONTENT_KEY_PREFIX",
    "HEALTH_CHECK_PAYLOAD",
    "Paste",
    "PasteLifecycle",
    "PasteStats",
    "UploadResult",
    "build_public_url",
    "content_key",
]

logger = get_logger(__name__)

CONTENT_KEY_PREFIX = "file_"

# Probe payload accepted below min_content_size so health checks can do a real write
HEALTH_CHECK_PAYLOAD = b"ping"


def content_key(identifier: str) -> str:
    """Origin/edge key for a paste's content."""
    return f"{CONTENT_KEY_PREFIX}{identifier}"


@dataclass(frozen=True, slots=True)
class UploadResult:
    """Outcome of an upload."""

    identifier: str
    url: str
    full_hash: Fingerprint
    created: bool  # False when the content was already live (dedup)


@dataclass(frozen=True, slots=True)
class Paste:
    """A downloaded paste."""

    identifier: str
    content: bytes
    mime_type: str
    full_hash: Fingerprint
    tier: Tier


@dataclass(frozen=True, slots=True)
class PasteStats:
    """Reporting snapshot for usage and status pages."""

    upload_count: int
    id_length: int
    encoding: HashEncoding
    retention_policy: RetentionPolicy
    origin_ttl_seconds: int
    cache_ttl_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {k: str(v) if isinstance(v, HashEncoding | RetentionPolicy) else v for k, v in asdict(self).items()}


def build_public_url(scheme: str, host: str, identifier: str, filename: str | None = None) -> str:
    """Public URL for a paste. The filename is cosmetic and never part of the key."""
    url = f"{scheme}://{host}/{identifier}"
    if filename:
        url += "/" + quote(filename, safe="")
    return url


class PasteLifecycle:
    """Orchestrates uploads, downloads and stats over two storage tiers.

    Either tier can be swapped independently: the origin store must satisfy
    OriginStore, the edge cache EdgeCache (or be None to disable caching).

    Usage:
        lifecycle = PasteLifecycle.from_settings(settings)
        result = lifecycle.upload(b"hello, paste store", filename="hi.txt", host="paste.example")
        paste = lifecycle.download(result.identifier)
    """

    def __init__(
        self,
        *,
        origin: OriginStore,
        edge: EdgeCache | None,
        fingerprinter: Fingerprinter,
        limits: LimitSettings,
        retention: RetentionSettings,
        counter: UploadCounter | None = None,
        surrogate_key: str = "hashpaste",
        verify_on_read: bool = False,
        mime_detector: Callable[[bytes, str | None], str] = detect_mime_type,
    ) -> None:
        self._origin = origin
        self._edge = edge
        self._fingerprinter = fingerprinter
        self._limits = limits
        self._retention = retention
        self._counter = counter if counter is not None else UploadCounter(origin)
        self._surrogate_key = surrogate_key
        self._verify_on_read = verify_on_read
        self._detect_mime_type = mime_detector

    @classmethod
    def from_settings(
        cls,
        settings: HashpasteSettings,
        *,
        origin: OriginStore | None = None,
        edge: EdgeCache | None = None,
        clock: Clock | None = None,
    ) -> PasteLifecycle:
        """Build a lifecycle manager and its stores from configuration.

        Explicit origin/edge arguments take precedence over the configured backends.
        """
        from hashpaste.storage.edge import MemoryEdgeCache
        from hashpaste.storage.origin import MemoryOriginStore, SQLiteOriginStore

        if origin is None:
            if settings.origin.backend == "memory":
                origin = MemoryOriginStore(clock=clock)
            else:
                origin = SQLiteOriginStore(settings.origin.database, clock=clock)

        if edge is None and settings.edge_cache.enabled:
            edge = MemoryEdgeCache(max_entries=settings.edge_cache.max_entries, clock=clock)

        return cls(
            origin=origin,
            edge=edge,
            fingerprinter=Fingerprinter(
                settings.fingerprint.algorithm,
                settings.fingerprint.encoding,
                settings.fingerprint.id_length,
            ),
            limits=settings.limits,
            retention=settings.retention,
            counter=UploadCounter(origin, clock=clock),
            surrogate_key=settings.edge_cache.surrogate_key,
            verify_on_read=settings.verify_on_read,
        )

    @property
    def origin(self) -> OriginStore:
        return self._origin

    @property
    def edge(self) -> EdgeCache | None:
        return self._edge

    @property
    def fingerprinter(self) -> Fingerprinter:
        return self._fingerprinter

    @property
    def counter(self) -> UploadCounter:
        return self._counter

    def validate(self, content: bytes | None) -> bytes:
        """Enforce ingress size bounds.

        Raises:
            EmptyPasteError: No body at all
            PasteTooSmallError: Below min_content_size (except the health-check probe)
            PasteTooLargeError: Above max_content_size
        """
        if not content:
            raise EmptyPasteError()
        size = len(content)
        if size > self._limits.max_content_size:
            raise PasteTooLargeError(size, self._limits.max_content_size)
        if size < self._limits.min_content_size and content != HEALTH_CHECK_PAYLOAD:
            raise PasteTooSmallError(size, self._limits.min_content_size)
        return content

    def upload(
        self,
        content: bytes | None,
        *,
        host: str,
        filename: str | None = None,
        scheme: str = "https",
    ) -> UploadResult:
        """Store content (once) and return its public URL.

        Raises:
            PasteValidationError: Body missing or outside the size bounds
            StoreUnavailableError: Origin store failed
            MetadataCorruptError: An existing entry under the key is unreadable
        """
        content = self.validate(content)
        full_hash, identifier = self._fingerprinter.identify(content)
        key = content_key(identifier)

        if self._origin.lookup(key) is not None:
            created = False
        else:
            metadata = {
                METADATA_HASH: str(full_hash),
                METADATA_MIME_TYPE: self._detect_mime_type(content, filename),
            }
            created = self._origin.insert(key, content, metadata, self._retention.origin_ttl_seconds)
            if created:
                self._counter.increment(identifier, filename)

        if created:
            logger.info("paste.created", identifier=identifier, size=len(content), filename=filename)
        else:
            logger.info("paste.deduplicated", identifier=identifier, size=len(content))

        return UploadResult(
            identifier=identifier,
            url=build_public_url(scheme, host, identifier, filename),
            full_hash=full_hash,
            created=created,
        )

    def download(self, identifier: str) -> Paste:
        """Fetch a paste through the edge cache, falling back to the origin.

        Raises:
            PasteNotFoundError: Unknown, expired or malformed identifier, or origin unavailable
            MetadataCorruptError: Stored metadata is unreadable (IntegrityError
                                  when verify_on_read detects a content mismatch)
        """
        if not self._fingerprinter.is_valid_identifier(identifier):
            logger.debug("paste.not_found", identifier=identifier[:64], reason="malformed")
            raise PasteNotFoundError(identifier)

        key = content_key(identifier)

        cached = self._edge_lookup(key)
        if cached is not None:
            paste = self._to_paste(identifier, key, cached, Tier.EDGE)
            if self._retention.refreshes_cache:
                self._edge_insert(key, cached)
            logger.debug("paste.read", identifier=identifier, tier=Tier.EDGE)
            return paste

        try:
            entry = self._origin.lookup(key)
        except StoreUnavailableError as e:
            logger.warning("origin.unavailable", identifier=identifier, error=str(e))
            raise PasteNotFoundError(identifier) from e
        if entry is None:
            logger.debug("paste.not_found", identifier=identifier, reason="absent")
            raise PasteNotFoundError(identifier)

        paste = self._to_paste(identifier, key, entry, Tier.ORIGIN)
        self._edge_insert(key, entry)
        if self._retention.refreshes_origin:
            try:
                self._origin.touch(key, self._retention.refreshed_origin_ttl_seconds)
            except StoreUnavailableError as e:
                logger.warning("origin.touch_failed", identifier=identifier, error=str(e))
        logger.debug("paste.read", identifier=identifier, tier=Tier.ORIGIN)
        return paste

    def stats(self) -> PasteStats:
        """Reporting snapshot. The upload count reads as 0 if the counter is unreadable."""
        try:
            upload_count = self._counter.count()
        except (StoreUnavailableError, MetadataCorruptError) as e:
            logger.warning("counter.read_failed", key=self._counter.key, error=str(e))
            upload_count = 0
        return PasteStats(
            upload_count=upload_count,
            id_length=self._fingerprinter.id_length,
            encoding=self._fingerprinter.encoding,
            retention_policy=self._retention.policy,
            origin_ttl_seconds=self._retention.origin_ttl_seconds,
            cache_ttl_seconds=self._retention.cache_ttl_seconds,
        )

    def _edge_lookup(self, key: str) -> StoredEntry | None:
        if self._edge is None:
            return None
        try:
            return self._edge.lookup(key)
        except StoreUnavailableError as e:
            logger.warning("edge.unavailable", key=key, operation="lookup", error=str(e))
            return None

    def _edge_insert(self, key: str, entry: StoredEntry) -> None:
        if self._edge is None:
            return
        try:
            self._edge.insert(key, entry, self._retention.cache_ttl_seconds, tags=(self._surrogate_key,))
        except StoreUnavailableError as e:
            logger.warning("edge.unavailable", key=key, operation="insert", error=str(e))

    def _to_paste(self, identifier: str, key: str, entry: StoredEntry, tier: Tier) -> Paste:
        raw_hash = entry.metadata.get(METADATA_HASH)
        if not isinstance(raw_hash, str):
            raise MetadataCorruptError(key, "missing content hash")
        try:
            full_hash = Fingerprint.parse(raw_hash)
        except ValueError as e:
            raise MetadataCorruptError(key, str(e)) from e

        mime_type = entry.metadata.get(METADATA_MIME_TYPE, DEFAULT_MIME_TYPE)
        if not isinstance(mime_type, str):
            raise MetadataCorruptError(key, f"mime_type must be a string, got {type(mime_type).__name__}")

        if self._verify_on_read and not full_hash.matches(entry.content):
            actual = fingerprint(entry.content, full_hash.algorithm)
            raise IntegrityError(key, str(full_hash), str(actual))

        return Paste(
            identifier=identifier,
            content=entry.content,
            mime_type=mime_type,
            full_hash=full_hash,
            tier=tier,
        )

    def close(self) -> None:
        """Release origin store resources, if the backend holds any."""
        close = getattr(self._origin, "close", None)
        if close is not None:
            close()
