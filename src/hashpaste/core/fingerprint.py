# src/hashpaste/core/fingerprint.py
"""Content fingerprints and the short identifiers derived from them.

A fingerprint is the full cryptographic hash of a paste's bytes. The public
identifier is a prefix of a text rendering of that hash (lowercase hex or
base-58), truncated to the configured length:

    fp = fingerprint(b"hello world")
    str(fp)                                     -> "sha256:b94d27b9934d3e08..."
    shorten(fp, 8, HashEncoding.HEX)            -> "b94d27b9"

Truncation shrinks the identifier space on purpose. Two different pastes
whose identifiers collide share one key and the first writer wins (dedup
never overwrites). The full hash stays in the entry metadata so clients can
verify what they downloaded independently of the short identifier.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding

__all__ = [
    "BASE58_ALPHABET",
    "HEX_ALPHABET",
    "Fingerprint",
    "Fingerprinter",
    "b58encode",
    "fingerprint",
    "max_identifier_length",
    "shorten",
]

# Bitcoin alphabet: no 0, O, I or l, which are easily confused in URLs and terminals
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
HEX_ALPHABET = "0123456789abcdef"

_ALPHABETS: dict[HashEncoding, frozenset[str]] = {
    HashEncoding.HEX: frozenset(HEX_ALPHABET),
    HashEncoding.BASE58: frozenset(BASE58_ALPHABET),
}

# Every supported algorithm yields a 32-byte digest
_DIGEST_SIZE = 32


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Full, untruncated content hash."""

    algorithm: HashAlgorithm
    digest: bytes

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hexdigest}"

    @classmethod
    def parse(cls, value: str) -> Fingerprint:
        """Parse the ``<algorithm>:<hex>`` form produced by ``str()``.

        Raises:
            ValueError: If the algorithm is unknown or the digest is not hex
                        of the expected size.
        """
        algorithm, sep, hexdigest = value.partition(":")
        if not sep:
            raise ValueError(f"Invalid fingerprint {value[:50]!r}: expected '<algorithm>:<hex>'")
        digest = bytes.fromhex(hexdigest)
        if len(digest) != _DIGEST_SIZE:
            raise ValueError(f"Invalid fingerprint {value[:50]!r}: digest must be {_DIGEST_SIZE} bytes, got {len(digest)}")
        return cls(HashAlgorithm(algorithm), digest)

    def matches(self, content: bytes) -> bool:
        """Re-hash content and compare against this fingerprint in constant time."""
        actual = fingerprint(content, self.algorithm)
        return hmac.compare_digest(actual.digest, self.digest)


def fingerprint(content: bytes, algorithm: HashAlgorithm = HashAlgorithm.SHA256) -> Fingerprint:
    """Hash the full content with a cryptographic hash function."""
    if algorithm is HashAlgorithm.BLAKE2B:
        hasher = hashlib.blake2b(content, digest_size=_DIGEST_SIZE)
    else:
        hasher = hashlib.new(algorithm.value, content)
    return Fingerprint(algorithm, hasher.digest())


def b58encode(data: bytes) -> str:
    """Encode bytes as base-58 using the Bitcoin alphabet.

    Leading zero bytes are preserved as leading '1' characters.
    """
    number = int.from_bytes(data, "big")
    encoded: list[str] = []
    while number:
        number, remainder = divmod(number, 58)
        encoded.append(BASE58_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading_zeros + "".join(reversed(encoded))


def max_identifier_length(encoding: HashEncoding) -> int:
    """Longest identifier every digest can produce under an encoding.

    A 32-byte digest is 64 hex characters. Its base-58 rendering varies
    between 32 characters (all zero bytes) and 44.
    """
    if encoding is HashEncoding.HEX:
        return _DIGEST_SIZE * 2
    return _DIGEST_SIZE


def shorten(full_hash: Fingerprint, length: int, encoding: HashEncoding = HashEncoding.BASE58) -> str:
    """Truncate the text rendering of a fingerprint to a public identifier.

    Raises:
        ValueError: If length is outside 1..max_identifier_length(encoding).
    """
    limit = max_identifier_length(encoding)
    if not 1 <= length <= limit:
        raise ValueError(f"Identifier length must be between 1 and {limit} for {encoding} encoding, got {length}")
    if encoding is HashEncoding.HEX:
        text = full_hash.hexdigest
    else:
        text = b58encode(full_hash.digest)
    return text[:length]


class Fingerprinter:
    """Fingerprint engine bound to one deployment's settings.

    Usage:
        engine = Fingerprinter(HashAlgorithm.SHA256, HashEncoding.BASE58, 16)
        full_hash, identifier = engine.identify(content)
        engine.is_valid_identifier(identifier)  # True
    """

    def __init__(self, algorithm: HashAlgorithm, encoding: HashEncoding, id_length: int) -> None:
        limit = max_identifier_length(encoding)
        if not 1 <= id_length <= limit:
            raise ValueError(f"id_length must be between 1 and {limit} for {encoding} encoding, got {id_length}")
        self.algorithm = algorithm
        self.encoding = encoding
        self.id_length = id_length
        self._alphabet = _ALPHABETS[encoding]

    def identify(self, content: bytes) -> tuple[Fingerprint, str]:
        full_hash = fingerprint(content, self.algorithm)
        return full_hash, shorten(full_hash, self.id_length, self.encoding)

    def is_valid_identifier(self, identifier: str) -> bool:
        """Cheap syntactic check: exact configured length, configured alphabet."""
        return len(identifier) == self.id_length and all(c in self._alphabet for c in identifier)
