"""Clock port.

Gating and aggregation read "now" only through a ``Clock`` so that idle
detection and bucket placement can be driven deterministically in tests.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .time import ensure_timezone

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
]


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...

    def now_ms(self) -> int:
        """Milliseconds on a clock suitable for measuring elapsed time."""
        ...


class SystemClock:
    """Wall clock for production use."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000


class ManualClock:
    """Clock that only moves when told to.

    Example:
        >>> clock = ManualClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
        >>> clock.advance(seconds=1)
        >>> clock.now()
        datetime.datetime(2024, 1, 1, 12, 0, 1, tzinfo=datetime.timezone.utc)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = ensure_timezone(start or datetime(2024, 1, 1, tzinfo=timezone.utc))
        self._origin = self._now

    def now(self) -> datetime:
        return self._now

    def now_ms(self) -> int:
        return int((self._now - self._origin) / timedelta(milliseconds=1))

    def advance(self, *, seconds: float = 0, milliseconds: float = 0) -> None:
        """Move the clock forward."""
        delta = timedelta(seconds=seconds, milliseconds=milliseconds)
        if delta < timedelta(0):
            raise ValueError("ManualClock cannot move backwards")
        self._now += delta

    def set(self, instant: datetime) -> None:
        """Jump to an instant (elapsed-time readings follow the jump)."""
        self._now = ensure_timezone(instant)
