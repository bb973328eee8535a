"""Core primitives: time keys, clock port, gate, events and tick loop."""

from .clock import Clock, ManualClock, SystemClock
from .errors import BackupError, BackupNotFoundError, DwellError, InvalidDeltaError, PersistenceError
from .events import (
    GATE_STATE_CHANGED,
    STORE_CLEARED,
    STORE_IMPORTED,
    STORE_PERSIST_FAILED,
    STORE_RESTORED,
    Event,
    EventBus,
    SubscriptionHandle,
)
from .gate import DEFAULT_IDLE_THRESHOLD_MS, ClockGate, GateState, InputKind
from .scheduler import TickScheduler, TickStats
from .time import Timestamp, day_key, hour_key, iso_week_number, resolve_timezone, week_key

__all__ = [
    # Clock
    "Clock",
    "ManualClock",
    "SystemClock",
    # Errors
    "BackupError",
    "BackupNotFoundError",
    "DwellError",
    "InvalidDeltaError",
    "PersistenceError",
    # Events
    "GATE_STATE_CHANGED",
    "STORE_CLEARED",
    "STORE_IMPORTED",
    "STORE_PERSIST_FAILED",
    "STORE_RESTORED",
    "Event",
    "EventBus",
    "SubscriptionHandle",
    # Gate
    "DEFAULT_IDLE_THRESHOLD_MS",
    "ClockGate",
    "GateState",
    "InputKind",
    # Tick loop
    "TickScheduler",
    "TickStats",
    # Keys
    "Timestamp",
    "day_key",
    "hour_key",
    "iso_week_number",
    "resolve_timezone",
    "week_key",
]
