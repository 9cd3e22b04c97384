# src/hashpaste/contracts/enums.py
"""Modes and kinds shared across the fingerprint, storage and lifecycle layers.

Values are the strings accepted in configuration files and reported in
stats output.
"""

from enum import StrEnum


class HashEncoding(StrEnum):
    """Text encoding used to render the public identifier."""

    HEX = "hex"
    BASE58 = "base58"


class HashAlgorithm(StrEnum):
    """Cryptographic hash used for content fingerprints.

    All members produce 32-byte digests.
    """

    SHA256 = "sha256"
    BLAKE2B = "blake2b"
    SHA3_256 = "sha3_256"


class RetentionPolicy(StrEnum):
    """How long a paste lives after it is written.

    FIXED: TTL set once at write time, reads never extend it.
    READ_REFRESH: short TTL at write time, extended on every successful read.
    """

    FIXED = "fixed"
    READ_REFRESH = "read_refresh"


class RefreshTier(StrEnum):
    """Which storage tier(s) a read-refresh extends."""

    ORIGIN = "origin"
    CACHE = "cache"
    BOTH = "both"


class Tier(StrEnum):
    """Storage tier that served a read."""

    EDGE = "edge"
    ORIGIN = "origin"
