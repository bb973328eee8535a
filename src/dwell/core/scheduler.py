"""Cooperative tick loop.

Runs one callable at a fixed interval on a single background thread. Each
run finishes before the next one is scheduled, so ticks never overlap and
the callable needs no locking. A failing run is logged and counted; the
loop keeps scheduling.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..observability import get_logger

__all__ = [
    "TickScheduler",
    "TickStats",
]

logger = get_logger("tracker")


@dataclass
class TickStats:
    """Counters for a running loop."""

    run_count: int = 0
    error_count: int = 0
    last_error: str | None = None
    last_run_at: float | None = None


class TickScheduler:
    """Calls ``target`` every ``interval_seconds`` on a daemon thread.

    >>> loop = TickScheduler(1.0, tracker.tick)
    >>> with loop:
    ...     wait_for_shutdown()
    """

    def __init__(self, interval_seconds: float, target: Callable[[], Any], *, name: str = "tick") -> None:
        if interval_seconds <= 0:
            raise ValueError(f"tick interval must be > 0 seconds, got {interval_seconds!r}")

        self.interval_seconds = interval_seconds
        self.name = name
        self.stats = TickStats()
        self._target = target
        self._worker: threading.Thread | None = None
        self._halt = threading.Event()

    def start(self) -> None:
        if self.is_running():
            return

        self._halt.clear()
        self._worker = threading.Thread(target=self._loop, name=f"dwell-{self.name}", daemon=True)
        self._worker.start()
        logger.info("Tick loop started", name=self.name, interval_seconds=self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop and wait up to ``timeout`` seconds for the current run."""
        worker, self._worker = self._worker, None
        if worker is None:
            return

        self._halt.set()
        worker.join(timeout=timeout)
        logger.info("Tick loop stopped", name=self.name, run_count=self.stats.run_count)

    def is_running(self) -> bool:
        return self._worker is not None and not self._halt.is_set()

    def run_once(self) -> None:
        """One guarded call of the target; exceptions end up in :attr:`stats`."""
        self.stats.last_run_at = time.time()
        try:
            self._target()
        except Exception as exc:
            self.stats.error_count += 1
            self.stats.last_error = str(exc)
            logger.exception(f"Tick {self.name} raised", name=self.name, error_count=self.stats.error_count)
        finally:
            self.stats.run_count += 1

    def _loop(self) -> None:
        due = time.monotonic() + self.interval_seconds
        while not self._halt.wait(max(0.0, due - time.monotonic())):
            self.run_once()
            due += self.interval_seconds
            now = time.monotonic()
            if due < now:
                # stalled: skip the missed ticks
                due = now + self.interval_seconds

    def __enter__(self) -> TickScheduler:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()
