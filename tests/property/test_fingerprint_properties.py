# tests/property/test_fingerprint_properties.py
"""Property-based tests for fingerprints and identifiers."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding
from hashpaste.core.fingerprint import (
    BASE58_ALPHABET,
    Fingerprint,
    Fingerprinter,
    b58encode,
    fingerprint,
    shorten,
)
from tests.property.conftest import algorithms, any_bytes, fingerprint_settings


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        number = number * 58 + BASE58_ALPHABET.index(char)
    leading = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading + body


class TestFingerprintProperties:
    @given(content=any_bytes, algorithm=algorithms)
    def test_deterministic(self, content: bytes, algorithm: HashAlgorithm) -> None:
        assert fingerprint(content, algorithm) == fingerprint(content, algorithm)

    @given(content=any_bytes, algorithm=algorithms)
    def test_string_form_parses_back(self, content: bytes, algorithm: HashAlgorithm) -> None:
        fp = fingerprint(content, algorithm)
        assert Fingerprint.parse(str(fp)) == fp

    @given(content=any_bytes, algorithm=algorithms)
    def test_matches_own_content(self, content: bytes, algorithm: HashAlgorithm) -> None:
        assert fingerprint(content, algorithm).matches(content)

    @given(content=any_bytes, extra=st.binary(min_size=1, max_size=16))
    def test_appending_changes_hash(self, content: bytes, extra: bytes) -> None:
        assert not fingerprint(content).matches(content + extra)


class TestBase58Properties:
    @given(data=st.binary(max_size=64))
    def test_decodes_back(self, data: bytes) -> None:
        assert _b58decode(b58encode(data)) == data

    @given(data=st.binary(max_size=64))
    def test_uses_alphabet_only(self, data: bytes) -> None:
        assert set(b58encode(data)) <= set(BASE58_ALPHABET)

    @given(digest=st.binary(min_size=32, max_size=32))
    def test_32_byte_digest_renders_at_least_32_chars(self, digest: bytes) -> None:
        assert len(b58encode(digest)) >= 32


class TestIdentifierProperties:
    @given(content=any_bytes, config=fingerprint_settings())
    def test_identifier_is_prefix_of_rendered_hash(
        self, content: bytes, config: tuple[HashAlgorithm, HashEncoding, int]
    ) -> None:
        algorithm, encoding, id_length = config
        full_hash, identifier = Fingerprinter(algorithm, encoding, id_length).identify(content)

        rendered = full_hash.hexdigest if encoding is HashEncoding.HEX else b58encode(full_hash.digest)
        assert len(identifier) == id_length
        assert rendered.startswith(identifier)
        assert identifier == shorten(full_hash, id_length, encoding)

    @given(content=any_bytes, config=fingerprint_settings())
    def test_own_identifiers_are_valid(self, content: bytes, config: tuple[HashAlgorithm, HashEncoding, int]) -> None:
        engine = Fingerprinter(*config)
        _, identifier = engine.identify(content)

        assert engine.is_valid_identifier(identifier)

    @given(content=any_bytes, length=st.integers(min_value=4, max_value=63))
    def test_longer_identifiers_extend_shorter(self, content: bytes, length: int) -> None:
        full_hash = fingerprint(content)
        assert shorten(full_hash, length + 1, HashEncoding.HEX).startswith(shorten(full_hash, length, HashEncoding.HEX))

    @given(text=st.text(max_size=40), config=fingerprint_settings())
    def test_validation_never_raises(self, text: str, config: tuple[HashAlgorithm, HashEncoding, int]) -> None:
        result = Fingerprinter(*config).is_valid_identifier(text)
        assert isinstance(result, bool)
