# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import paste_bodies, identifier_lengths

    @given(content=paste_bodies)
    def test_upload_is_idempotent(content: bytes) -> None:
        ...
"""

from __future__ import annotations

from hypothesis import strategies as st

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding

# Bodies inside the default size bounds (16 bytes .. well under 16 MiB)
paste_bodies = st.binary(min_size=16, max_size=4096)

# Any bytes at all, including empty, for pure hashing properties
any_bytes = st.binary(max_size=4096)

algorithms = st.sampled_from(list(HashAlgorithm))
encodings = st.sampled_from(list(HashEncoding))


@st.composite
def identifier_lengths(draw: st.DrawFn, encoding: HashEncoding) -> int:
    """Valid id_length for an encoding."""
    from hashpaste.core.fingerprint import max_identifier_length

    return draw(st.integers(min_value=4, max_value=max_identifier_length(encoding)))


@st.composite
def fingerprint_settings(draw: st.DrawFn) -> tuple[HashAlgorithm, HashEncoding, int]:
    """(algorithm, encoding, id_length) triples a deployment could configure."""
    encoding = draw(encodings)
    return draw(algorithms), encoding, draw(identifier_lengths(encoding))
