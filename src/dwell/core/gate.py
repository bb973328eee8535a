"""Clock gate: decides whether a timer tick counts as active time.

States: ACTIVE, IDLE, HIDDEN (initial ACTIVE).

- input signal (pointer move, key press, click, scroll) -> ACTIVE, idle timer reset
- visibility lost -> HIDDEN, whatever the idle timer says
- visibility restored -> ACTIVE, idle timer reset
- no input for more than ``idle_threshold_ms`` while not HIDDEN -> IDLE

A tick is credited iff the gate is ACTIVE once the idle check has run.
Input may arrive on another thread than the tick loop, so every state
change happens under one lock.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import TYPE_CHECKING

from ..observability import get_logger
from .events import GATE_STATE_CHANGED

if TYPE_CHECKING:
    from .clock import Clock
    from .events import EventBus

__all__ = [
    "DEFAULT_IDLE_THRESHOLD_MS",
    "ClockGate",
    "GateState",
    "InputKind",
]

DEFAULT_IDLE_THRESHOLD_MS = 30_000

logger = get_logger("tracker")


class GateState(str, Enum):
    """Gate states."""

    ACTIVE = "active"
    IDLE = "idle"
    HIDDEN = "hidden"


class InputKind(str, Enum):
    """User input signals that reset the idle timer."""

    POINTER_MOVE = "pointer_move"
    KEY_PRESS = "key_press"
    CLICK = "click"
    SCROLL = "scroll"


class ClockGate:
    """Activity/visibility state machine.

    Example:
        >>> clock = ManualClock()
        >>> gate = ClockGate(clock)
        >>> gate.is_credited()
        True
        >>> clock.advance(seconds=31)
        >>> gate.is_credited()
        False
        >>> gate.record_input(InputKind.CLICK)
        >>> gate.is_credited()
        True
    """

    def __init__(
        self,
        clock: Clock,
        *,
        idle_threshold_ms: int = DEFAULT_IDLE_THRESHOLD_MS,
        event_bus: EventBus | None = None,
    ) -> None:
        if idle_threshold_ms <= 0:
            raise ValueError(f"Idle threshold must be positive, got: {idle_threshold_ms}")

        self.clock = clock
        self.idle_threshold_ms = idle_threshold_ms
        self.event_bus = event_bus
        self._lock = threading.RLock()
        self._state = GateState.ACTIVE
        self._last_input_ms = clock.now_ms()

    @property
    def state(self) -> GateState:
        return self._state

    def record_input(self, kind: InputKind | str = InputKind.POINTER_MOVE) -> None:
        """Register a user input signal."""
        kind = InputKind(kind)
        with self._lock:
            self._last_input_ms = self.clock.now_ms()
            self._transition(GateState.ACTIVE, reason=f"input:{kind.value}")

    def visibility_lost(self) -> None:
        with self._lock:
            self._transition(GateState.HIDDEN, reason="visibility_lost")

    def visibility_restored(self) -> None:
        with self._lock:
            self._last_input_ms = self.clock.now_ms()
            self._transition(GateState.ACTIVE, reason="visibility_restored")

    def check_idle(self) -> GateState:
        """Move to IDLE when the idle threshold has passed; returns the state."""
        with self._lock:
            if self._state is GateState.HIDDEN:
                return self._state

            idle_for = self.clock.now_ms() - self._last_input_ms
            if idle_for > self.idle_threshold_ms:
                self._transition(GateState.IDLE, reason="idle_timeout")

            return self._state

    def is_credited(self) -> bool:
        """Whether a tick delivered now counts as active time."""
        return self.check_idle() is GateState.ACTIVE

    def _transition(self, to_state: GateState, *, reason: str) -> None:
        from_state = self._state
        if from_state is to_state:
            return

        self._state = to_state
        logger.debug(
            f"Gate {from_state.value} -> {to_state.value}",
            from_state=from_state.value,
            to_state=to_state.value,
            reason=reason,
        )

        if self.event_bus is not None:
            self.event_bus.publish(
                GATE_STATE_CHANGED,
                {"from_state": from_state.value, "to_state": to_state.value, "reason": reason},
            )
