"""Tracker: one running aggregator for one domain.

A tracker owns its gate, clock and tick loop. Each tick asks the gate
whether the tick counts and, if so, credits ``tick_seconds`` to the domain
at the current instant. Ticks never overlap (see ``TickScheduler``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .core.clock import SystemClock
from .core.errors import PersistenceError
from .core.events import STORE_PERSIST_FAILED
from .core.gate import DEFAULT_IDLE_THRESHOLD_MS, ClockGate, GateState, InputKind
from .core.scheduler import TickScheduler
from .observability import get_logger

if TYPE_CHECKING:
    from .core.clock import Clock
    from .core.events import EventBus
    from .storage.store import AggregateStore

__all__ = [
    "TickOutcome",
    "Tracker",
]

logger = get_logger("tracker")


@dataclass(frozen=True)
class TickOutcome:
    """Result of a single tick.

    Attributes
    ----------
    credited : bool
        Gate was ACTIVE and the tick counted
    persisted : bool
        The credited seconds reached the backend
    error : str | None
        Persistence failure message, if any
    """

    credited: bool
    persisted: bool
    error: str | None = None


class Tracker:
    """Credits active time for ``domain`` into a store.

    Example:
        >>> clock = ManualClock(datetime(2024, 1, 1, 12, tzinfo=timezone.utc))
        >>> tracker = Tracker("example.com", store, clock=clock)
        >>> tracker.tick()
        TickOutcome(credited=True, persisted=True, error=None)
    """

    def __init__(
        self,
        domain: str,
        store: AggregateStore,
        *,
        clock: Clock | None = None,
        gate: ClockGate | None = None,
        event_bus: EventBus | None = None,
        tick_seconds: int = 1,
        idle_threshold_ms: int = DEFAULT_IDLE_THRESHOLD_MS,
    ) -> None:
        if not domain:
            raise ValueError("Domain must be a non-empty string")
        if tick_seconds <= 0:
            raise ValueError(f"Tick length must be positive, got: {tick_seconds}")

        self.domain = domain
        self.store = store
        self.clock = clock or SystemClock()
        self.event_bus = event_bus if event_bus is not None else store.event_bus
        self.gate = gate or ClockGate(self.clock, idle_threshold_ms=idle_threshold_ms, event_bus=self.event_bus)
        self.tick_seconds = tick_seconds
        self._scheduler: TickScheduler | None = None
        self._started_ms = self.clock.now_ms()

    @property
    def state(self) -> GateState:
        return self.gate.state

    def record_input(self, kind: InputKind | str = InputKind.POINTER_MOVE) -> None:
        self.gate.record_input(kind)

    def visibility_changed(self, visible: bool) -> None:
        """Forward a page visibility change to the gate."""
        if visible:
            self.gate.visibility_restored()
        else:
            self.gate.visibility_lost()

    def tick(self) -> TickOutcome:
        """Run one tick: gate decision, then apply and persist.

        Persistence failures are logged and published as
        ``store.persist_failed``; they do not propagate so the loop keeps
        running.
        """
        if not self.gate.is_credited():
            return TickOutcome(credited=False, persisted=False)

        try:
            self.store.apply(self.domain, self.clock.now(), self.tick_seconds)
        except PersistenceError as exc:
            logger.opt(exception=exc).error("Failed to persist tick", domain=self.domain)
            if self.event_bus is not None:
                self.event_bus.publish(STORE_PERSIST_FAILED, {"domain": self.domain, "error": str(exc)})
            return TickOutcome(credited=True, persisted=False, error=str(exc))

        return TickOutcome(credited=True, persisted=True)

    def session_seconds(self) -> int:
        """Wall seconds since the tracker started, active or not."""
        return max(0, (self.clock.now_ms() - self._started_ms) // 1000)

    def start(self) -> None:
        """Start ticking every ``tick_seconds`` on a background thread."""
        if self._scheduler is not None and self._scheduler.is_running():
            return

        self._started_ms = self.clock.now_ms()
        self._scheduler = TickScheduler(self.tick_seconds, self.tick, name=f"tick:{self.domain}")
        self._scheduler.start()
        logger.info("Tracker started", domain=self.domain, tick_seconds=self.tick_seconds)

    def stop(self) -> None:
        """Stop the tick loop (teardown)."""
        if self._scheduler is None:
            return

        self._scheduler.stop()
        logger.info("Tracker stopped", domain=self.domain, ticks=self._scheduler.stats.run_count)
        self._scheduler = None

    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_running()

    def __enter__(self) -> Tracker:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
