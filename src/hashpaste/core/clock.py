# src/hashpaste/core/clock.py
"""Clock abstraction for testable expiry logic.

TTLs are persisted as absolute wall-clock deadlines in the origin store,
so the clock reports epoch seconds rather than monotonic time.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock for TTL calculations."""

    def time(self) -> float:
        """Return the current time in seconds since the epoch."""
        ...


class SystemClock:
    """Production clock using time.time()."""

    def time(self) -> float:
        return time.time()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=1_700_000_000.0)
        store = MemoryOriginStore(clock=clock)

        store.insert("file_abc", b"...", {}, ttl_seconds=60)
        clock.advance(61)
        assert store.lookup("file_abc") is None
    """

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._current = start

    def time(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds

    def set(self, value: float) -> None:
        """Set mock time to an absolute value."""
        self._current = value


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
