# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Stores and the lifecycle manager are built directly (no config loading) with
a shared MockClock, so TTL behaviour is driven by clock.advance() instead of
sleeping.
"""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from hypothesis import HealthCheck, Verbosity, settings

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding, RefreshTier, RetentionPolicy
from hashpaste.core.clock import MockClock
from hashpaste.core.config import (
    HashpasteSettings,
    LimitSettings,
    OriginSettings,
    RetentionSettings,
)
from hashpaste.core.counter import UploadCounter
from hashpaste.core.fingerprint import Fingerprinter
from hashpaste.core.lifecycle import PasteLifecycle
from hashpaste.core.mime import TEXT_MIME_TYPE
from hashpaste.storage.edge import MemoryEdgeCache
from hashpaste.storage.origin import MemoryOriginStore, SQLiteOriginStore

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "nightly",
    max_examples=1000,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_hashpaste_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep HASHPASTE_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("HASHPASTE_") or name == "_HASHPASTE_SERVE_SETTINGS":
            monkeypatch.delenv(name, raising=False)


# =============================================================================
# Storage fixtures
# =============================================================================

# Short TTLs keep the arithmetic in lifecycle tests readable
ORIGIN_TTL = 100
REFRESHED_ORIGIN_TTL = 1000
CACHE_TTL = 10


def plain_text_mime(content: bytes, filename: str | None = None) -> str:
    """Deterministic MIME detector so lifecycle tests don't depend on libmagic."""
    return TEXT_MIME_TYPE


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def memory_origin(clock: MockClock) -> MemoryOriginStore:
    return MemoryOriginStore(clock=clock)


@pytest.fixture
def sqlite_origin(tmp_path: Path, clock: MockClock) -> Iterator[SQLiteOriginStore]:
    store = SQLiteOriginStore(str(tmp_path / "origin.db"), clock=clock)
    yield store
    store.close()


@pytest.fixture
def edge_cache(clock: MockClock) -> MemoryEdgeCache:
    return MemoryEdgeCache(max_entries=64, clock=clock)


@pytest.fixture
def retention() -> RetentionSettings:
    return RetentionSettings(
        policy=RetentionPolicy.READ_REFRESH,
        origin_ttl_seconds=ORIGIN_TTL,
        refreshed_origin_ttl_seconds=REFRESHED_ORIGIN_TTL,
        cache_ttl_seconds=CACHE_TTL,
        refresh_tiers=RefreshTier.ORIGIN,
    )


@pytest.fixture
def fingerprinter() -> Fingerprinter:
    return Fingerprinter(HashAlgorithm.SHA256, HashEncoding.BASE58, 16)


@pytest.fixture
def lifecycle(
    memory_origin: MemoryOriginStore,
    edge_cache: MemoryEdgeCache,
    fingerprinter: Fingerprinter,
    retention: RetentionSettings,
    clock: MockClock,
) -> PasteLifecycle:
    return PasteLifecycle(
        origin=memory_origin,
        edge=edge_cache,
        fingerprinter=fingerprinter,
        limits=LimitSettings(),
        retention=retention,
        counter=UploadCounter(memory_origin, clock=clock),
        mime_detector=plain_text_mime,
    )


@pytest.fixture
def memory_settings() -> HashpasteSettings:
    """Settings with the in-memory origin backend and short TTLs."""
    return HashpasteSettings(
        origin=OriginSettings(backend="memory"),
        retention=RetentionSettings(
            origin_ttl_seconds=ORIGIN_TTL,
            refreshed_origin_ttl_seconds=REFRESHED_ORIGIN_TTL,
            cache_ttl_seconds=CACHE_TTL,
        ),
    )
