# tests/property/test_lifecycle_properties.py
"""Property-based tests for upload/download invariants."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding
from hashpaste.core.clock import MockClock
from hashpaste.core.config import LimitSettings, RetentionSettings
from hashpaste.core.counter import UploadCounter
from hashpaste.core.fingerprint import Fingerprinter
from hashpaste.core.lifecycle import PasteLifecycle
from hashpaste.storage.edge import MemoryEdgeCache
from hashpaste.storage.origin import MemoryOriginStore
from tests.property.conftest import fingerprint_settings, paste_bodies


def _lifecycle(config: tuple[HashAlgorithm, HashEncoding, int] = (HashAlgorithm.SHA256, HashEncoding.BASE58, 16)) -> PasteLifecycle:
    clock = MockClock()
    origin = MemoryOriginStore(clock=clock)
    return PasteLifecycle(
        origin=origin,
        edge=MemoryEdgeCache(clock=clock),
        fingerprinter=Fingerprinter(*config),
        limits=LimitSettings(),
        retention=RetentionSettings(),
        counter=UploadCounter(origin, clock=clock),
        mime_detector=lambda content, filename: "application/octet-stream",
    )


class TestLifecycleProperties:
    @given(content=paste_bodies, config=fingerprint_settings())
    def test_round_trip_is_byte_exact(self, content: bytes, config: tuple[HashAlgorithm, HashEncoding, int]) -> None:
        lifecycle = _lifecycle(config)
        result = lifecycle.upload(content, host="paste.example")

        assert lifecycle.download(result.identifier).content == content
        # Second read comes from the edge cache, same bytes
        assert lifecycle.download(result.identifier).content == content

    @given(content=paste_bodies, repeats=st.integers(min_value=2, max_value=5))
    def test_repeated_uploads_are_idempotent(self, content: bytes, repeats: int) -> None:
        lifecycle = _lifecycle()
        results = [lifecycle.upload(content, host="paste.example") for _ in range(repeats)]

        assert len({r.url for r in results}) == 1
        assert [r.created for r in results] == [True] + [False] * (repeats - 1)
        assert lifecycle.counter.count() == 1

    @given(contents=st.lists(paste_bodies, min_size=1, max_size=8, unique=True))
    def test_count_tracks_unique_uploads(self, contents: list[bytes]) -> None:
        lifecycle = _lifecycle()
        identifiers = {lifecycle.upload(content, host="paste.example").identifier for content in contents}

        assert lifecycle.counter.count() == len(identifiers)

    @given(content=paste_bodies, filename=st.text(min_size=1, max_size=20))
    def test_filename_never_changes_identifier(self, content: bytes, filename: str) -> None:
        lifecycle = _lifecycle()

        assert lifecycle.upload(content, host="h", filename=filename).identifier == lifecycle.upload(content, host="h").identifier
