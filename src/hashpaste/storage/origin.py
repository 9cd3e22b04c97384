# src/hashpaste/storage/origin.py
"""Origin store implementations: the durable system-of-record tier.

Entries are (content, metadata, expires_at) rows keyed by namespaced
strings. Expiry is enforced on every read, so an expired key is
indistinguishable from a missing one; purge_expired() only reclaims space.

Two backends share the same semantics:
- SQLiteOriginStore: thread-safe SQLite storage (file or shared in-memory URI)
- MemoryOriginStore: process-local dict, for tests and single-process demos
"""

import contextlib
import json
import sqlite3
import threading
import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hashpaste.contracts.errors import MetadataCorruptError, StoreUnavailableError
from hashpaste.contracts.store import StoredEntry
from hashpaste.core.clock import DEFAULT_CLOCK, Clock

__all__ = ["MemoryOriginStore", "SQLiteOriginStore"]

_DDL = """
CREATE TABLE IF NOT EXISTS entries (
    key TEXT PRIMARY KEY,
    content BLOB NOT NULL,
    metadata TEXT NOT NULL,
    expires_at REAL
);

CREATE INDEX IF NOT EXISTS idx_entries_expires_at ON entries(expires_at);
"""


def _expires_at(now: float, ttl_seconds: float | None) -> float | None:
    return None if ttl_seconds is None else now + ttl_seconds


def _is_live(expires_at: float | None, now: float) -> bool:
    return expires_at is None or expires_at > now


def _encode_metadata(metadata: Mapping[str, Any]) -> str:
    return json.dumps(dict(metadata), sort_keys=True, separators=(",", ":"))


def _decode_metadata(key: str, raw: str) -> dict[str, Any]:
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MetadataCorruptError(key, f"invalid JSON ({e.msg})") from e
    if not isinstance(decoded, dict):
        raise MetadataCorruptError(key, f"expected a JSON object, got {type(decoded).__name__}")
    return decoded


class SQLiteOriginStore:
    """Thread-safe SQLite origin store.

    Each thread gets its own connection. Writes run inside BEGIN IMMEDIATE
    transactions so check-then-write sequences (insert-if-absent, append)
    are atomic across threads and processes sharing the database.

    Usage:
        store = SQLiteOriginStore(".hashpaste/origin.db")
        store.insert("file_abc", b"hello", {"hash": "sha256:..."}, ttl_seconds=86400)
        entry = store.lookup("file_abc")
    """

    backend_name = "sqlite"

    def __init__(self, database: str, *, clock: Clock | None = None) -> None:
        """Initialize the store and create the schema.

        Args:
            database: File path, or a ``file:`` URI (e.g. a shared in-memory database).
                ``":memory:"`` becomes a private shared-cache URI
            clock: Clock for expiry calculations (defaults to system time)
        """
        if database == ":memory:":
            # Thread-local connections must all see the same in-memory database
            database = f"file:hashpaste-{uuid.uuid4().hex}?mode=memory&cache=shared"
        self._database = database
        self._clock = clock if clock is not None else DEFAULT_CLOCK

        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []

        self._use_uri = database.startswith("file:")
        self._is_memory_db = "mode=memory" in database

        if not self._is_memory_db and not self._use_uri:
            db_path = Path(database)
            if db_path.parent != Path("."):
                db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._translate_errors("init", "*"):
            conn = self._get_connection()
            conn.executescript(_DDL)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a thread-local database connection."""
        try:
            connection: sqlite3.Connection = self._local.connection
            return connection
        except AttributeError:
            conn = sqlite3.connect(
                self._database,
                check_same_thread=False,
                timeout=30.0,
                uri=self._use_uri,
                isolation_level=None,  # explicit BEGIN/COMMIT below
            )
            if self._is_memory_db:
                conn.execute("PRAGMA journal_mode=MEMORY")
            else:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
            self._local.connection = conn
            with self._lock:
                self._connections.append(conn)
            return conn

    @contextlib.contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise StoreUnavailableError(self.backend_name, operation, key) from e

    @contextlib.contextmanager
    def _transaction(self, operation: str, key: str) -> Iterator[sqlite3.Connection]:
        with self._translate_errors(operation, key):
            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _select(self, conn: sqlite3.Connection, key: str) -> tuple[bytes, str, float | None] | None:
        row = conn.execute(
            "SELECT content, metadata, expires_at FROM entries WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        content, metadata, expires_at = row
        if not _is_live(expires_at, self._clock.time()):
            return None
        return bytes(content), metadata, expires_at

    def lookup(self, key: str) -> StoredEntry | None:
        with self._translate_errors("lookup", key):
            row = self._select(self._get_connection(), key)
        if row is None:
            return None
        content, metadata, _ = row
        return StoredEntry(content=content, metadata=_decode_metadata(key, metadata))

    def insert(
        self,
        key: str,
        content: bytes,
        metadata: Mapping[str, Any],
        ttl_seconds: float | None,
    ) -> bool:
        encoded = _encode_metadata(metadata)
        with self._transaction("insert", key) as conn:
            if self._select(conn, key) is not None:
                return False
            # Replaces an expired row under the same key
            conn.execute(
                "INSERT OR REPLACE INTO entries (key, content, metadata, expires_at) VALUES (?, ?, ?, ?)",
                (key, content, encoded, _expires_at(self._clock.time(), ttl_seconds)),
            )
        return True

    def append(
        self,
        key: str,
        data: bytes,
        *,
        metadata: Mapping[str, Any] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        with self._transaction("append", key) as conn:
            existing = self._select(conn, key)
            if existing is None:
                content = data
                encoded = _encode_metadata(metadata if metadata is not None else {})
            else:
                content = existing[0] + data
                encoded = _encode_metadata(metadata) if metadata is not None else existing[1]
            conn.execute(
                "INSERT OR REPLACE INTO entries (key, content, metadata, expires_at) VALUES (?, ?, ?, ?)",
                (key, content, encoded, _expires_at(self._clock.time(), ttl_seconds)),
            )

    def touch(self, key: str, ttl_seconds: float) -> bool:
        now = self._clock.time()
        with self._transaction("touch", key) as conn:
            cursor = conn.execute(
                "UPDATE entries SET expires_at = ? WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)",
                (now + ttl_seconds, key, now),
            )
            return cursor.rowcount > 0

    def purge_expired(self) -> int:
        """Physically delete expired rows.

        Returns:
            Number of rows deleted
        """
        with self._transaction("purge", "*") as conn:
            cursor = conn.execute(
                "DELETE FROM entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (self._clock.time(),),
            )
            return cursor.rowcount

    def close(self) -> None:
        """Close all connections opened by this store."""
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


@dataclass
class _MemoryRow:
    content: bytes
    metadata: str
    expires_at: float | None


class MemoryOriginStore:
    """Process-local origin store with the same semantics as SQLiteOriginStore.

    Metadata is round-tripped through JSON so corruption and serialization
    behave as they would in a real backend.
    """

    backend_name = "memory"

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._rows: dict[str, _MemoryRow] = {}
        self._lock = threading.Lock()

    def _live_row(self, key: str) -> _MemoryRow | None:
        row = self._rows.get(key)
        if row is None or not _is_live(row.expires_at, self._clock.time()):
            return None
        return row

    def lookup(self, key: str) -> StoredEntry | None:
        with self._lock:
            row = self._live_row(key)
        if row is None:
            return None
        return StoredEntry(content=row.content, metadata=_decode_metadata(key, row.metadata))

    def insert(
        self,
        key: str,
        content: bytes,
        metadata: Mapping[str, Any],
        ttl_seconds: float | None,
    ) -> bool:
        encoded = _encode_metadata(metadata)
        with self._lock:
            if self._live_row(key) is not None:
                return False
            self._rows[key] = _MemoryRow(bytes(content), encoded, _expires_at(self._clock.time(), ttl_seconds))
        return True

    def append(
        self,
        key: str,
        data: bytes,
        *,
        metadata: Mapping[str, Any] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        with self._lock:
            existing = self._live_row(key)
            if existing is None:
                content = bytes(data)
                encoded = _encode_metadata(metadata if metadata is not None else {})
            else:
                content = existing.content + data
                encoded = _encode_metadata(metadata) if metadata is not None else existing.metadata
            self._rows[key] = _MemoryRow(content, encoded, _expires_at(self._clock.time(), ttl_seconds))

    def touch(self, key: str, ttl_seconds: float) -> bool:
        with self._lock:
            row = self._live_row(key)
            if row is None:
                return False
            row.expires_at = self._clock.time() + ttl_seconds
        return True

    def purge_expired(self) -> int:
        now = self._clock.time()
        with self._lock:
            expired = [key for key, row in self._rows.items() if not _is_live(row.expires_at, now)]
            for key in expired:
                del self._rows[key]
        return len(expired)

    def close(self) -> None:
        """No resources to release."""
