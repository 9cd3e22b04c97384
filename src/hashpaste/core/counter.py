# src/hashpaste/core/counter.py
"""Best-effort upload counter persisted in the origin store.

The counter is an append-only log under one well-known key. Every unique
upload appends one line:

    2026-10-19T10:21:07.481233+00:00<TAB>7Hq3vX9kLmNpQr2s<TAB>notes.txt

and the running total is cached in that key's metadata as ``{"count": N}``
so reads don't have to scan the log. When the cached count is missing or
unusable it is rebuilt by counting lines, and the next increment writes it
back.

Increments are read-modify-write without coordination. Concurrent uploads
in different processes can lose an update; the count is informational only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from hashpaste.contracts.errors import MetadataCorruptError, StoreUnavailableError
from hashpaste.contracts.store import OriginStore, StoredEntry
from hashpaste.core.clock import DEFAULT_CLOCK, Clock
from hashpaste.core.logging import get_logger

__all__ = ["COUNTER_KEY", "UploadCounter", "UploadRecord"]

logger = get_logger(__name__)

COUNTER_KEY = "stats_uploads"

_COUNT_FIELD = "count"
_NO_LABEL = "-"


@dataclass(frozen=True, slots=True)
class UploadRecord:
    """One line of the upload log."""

    timestamp: datetime
    identifier: str
    label: str | None


def _sanitize_label(label: str | None) -> str:
    if not label:
        return _NO_LABEL
    return label.replace("\t", " ").replace("\r", " ").replace("\n", " ")


def _cached_count(entry: StoredEntry) -> int | None:
    value = entry.metadata.get(_COUNT_FIELD)
    # bool is an int subclass; a flag is not a count
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def _count_lines(entry: StoredEntry) -> int:
    return entry.content.count(b"\n")


class UploadCounter:
    """Append-only upload log with a cached count.

    Usage:
        counter = UploadCounter(origin_store)
        counter.increment("7Hq3vX9kLmNpQr2s", "notes.txt")
        counter.count()  # -> 1
    """

    def __init__(self, store: OriginStore, *, key: str = COUNTER_KEY, clock: Clock | None = None) -> None:
        self._store = store
        self._key = key
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    @property
    def key(self) -> str:
        return self._key

    def increment(self, identifier: str, label: str | None = None) -> None:
        """Record one unique upload. Never raises.

        Args:
            identifier: Public identifier of the new paste
            label: Optional client-supplied filename
        """
        timestamp = datetime.fromtimestamp(self._clock.time(), UTC).isoformat()
        record = f"{timestamp}\t{identifier}\t{_sanitize_label(label)}\n".encode()

        try:
            try:
                entry = self._store.lookup(self._key)
            except MetadataCorruptError as e:
                # Replace the unreadable metadata; the next read rebuilds the count
                logger.warning("counter.metadata_corrupt", key=self._key, reason=e.reason)
                self._store.append(self._key, record, metadata={}, ttl_seconds=None)
                return

            if entry is None:
                current = 0
            else:
                cached = _cached_count(entry)
                if cached is None:
                    current = _count_lines(entry)
                    logger.info("counter.metadata_rebuilt", key=self._key, count=current)
                else:
                    current = cached

            self._store.append(
                self._key,
                record,
                metadata={_COUNT_FIELD: current + 1},
                ttl_seconds=None,
            )
        except StoreUnavailableError as e:
            logger.warning("counter.increment_failed", key=self._key, identifier=identifier, error=str(e))

    def count(self) -> int:
        """Current upload count.

        Raises:
            StoreUnavailableError: If the origin store fails
            MetadataCorruptError: If the counter key's metadata is unreadable
        """
        entry = self._store.lookup(self._key)
        if entry is None:
            return 0
        cached = _cached_count(entry)
        return cached if cached is not None else _count_lines(entry)

    def records(self, limit: int | None = None) -> list[UploadRecord]:
        """Parse the upload log, most recent last.

        Args:
            limit: Only return the newest ``limit`` records

        Raises:
            StoreUnavailableError: If the origin store fails
            MetadataCorruptError: If the counter key's metadata is unreadable
        """
        entry = self._store.lookup(self._key)
        if entry is None:
            return []
        # Records end in b"\n" only; labels may hold other line-boundary characters
        lines = [line for line in entry.content.decode("utf-8", errors="replace").split("\n") if line]
        if limit is not None:
            lines = lines[-limit:] if limit > 0 else []

        records: list[UploadRecord] = []
        for line in lines:
            timestamp, _, rest = line.partition("\t")
            identifier, _, label = rest.partition("\t")
            try:
                parsed = datetime.fromisoformat(timestamp)
            except ValueError:
                logger.debug("counter.record_skipped", line=line[:80])
                continue
            records.append(UploadRecord(parsed, identifier, None if label in ("", _NO_LABEL) else label))
        return records
