"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core or
storage. Settings classes are NOT re-exported here - import them from
hashpaste.core.config.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from hashpaste.contracts import StoredEntry, OriginStore, PasteNotFoundError

    # Settings classes (from core, pulls in pydantic/dynaconf)
    from hashpaste.core.config import HashpasteSettings
"""

from hashpaste.contracts.enums import (
    HashAlgorithm,
    HashEncoding,
    RefreshTier,
    RetentionPolicy,
    Tier,
)
from hashpaste.contracts.errors import (
    EmptyPasteError,
    IntegrityError,
    MetadataCorruptError,
    PasteError,
    PasteNotFoundError,
    PasteTooLargeError,
    PasteTooSmallError,
    PasteValidationError,
    StoreUnavailableError,
)
from hashpaste.contracts.store import (
    METADATA_HASH,
    METADATA_MIME_TYPE,
    EdgeCache,
    OriginStore,
    StoredEntry,
)

__all__ = [
    "METADATA_HASH",
    "METADATA_MIME_TYPE",
    "EdgeCache",
    "EmptyPasteError",
    "HashAlgorithm",
    "HashEncoding",
    "IntegrityError",
    "MetadataCorruptError",
    "OriginStore",
    "PasteError",
    "PasteNotFoundError",
    "PasteTooLargeError",
    "PasteTooSmallError",
    "PasteValidationError",
    "RefreshTier",
    "RetentionPolicy",
    "StoreUnavailableError",
    "StoredEntry",
    "Tier",
]
