"""In-process event bus.

Destructive store operations (restore, clear, import) and persistence
failures are announced here so that a presentation layer can react, e.g.
by reloading its view. Delivery is synchronous and in subscription order.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from ..observability import get_logger

__all__ = [
    "GATE_STATE_CHANGED",
    "STORE_CLEARED",
    "STORE_IMPORTED",
    "STORE_PERSIST_FAILED",
    "STORE_RESTORED",
    "Event",
    "EventBus",
    "EventHandler",
    "SubscriptionHandle",
]

STORE_RESTORED = "store.restored"
STORE_CLEARED = "store.cleared"
STORE_IMPORTED = "store.imported"
STORE_PERSIST_FAILED = "store.persist_failed"
GATE_STATE_CHANGED = "gate.state_changed"

logger = get_logger("tracker")


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    published_at: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Any]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Returned by :meth:`EventBus.subscribe`; pass it back to unsubscribe."""

    key: int
    event_name: str
    handler: EventHandler
    once: bool = False


@dataclass
class _Counters:
    published: int = 0
    delivered: int = 0
    failed: int = 0


class EventBus:
    """Synchronous pub/sub keyed by event name.

    A handler that raises is logged and counted as failed. The remaining
    handlers still run and the publisher never sees the exception.

    >>> bus = EventBus()
    >>> _ = bus.subscribe(STORE_RESTORED, lambda event: print(event.payload["source"]))
    >>> bus.publish(STORE_RESTORED, {"source": "backup"})
    backup
    1
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[SubscriptionHandle]] = {}
        self._counters: dict[str, _Counters] = {}
        self._keys = itertools.count(1)

    def publish(self, event_name: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver ``payload`` to every handler of ``event_name``.

        Returns the number of handlers that completed without raising.
        """
        event = Event(event_name, dict(payload or {}))
        counters = self._counters.setdefault(event_name, _Counters())
        counters.published += 1

        handles = self._handlers.get(event_name, [])
        if any(handle.once for handle in handles):
            self._handlers[event_name] = [handle for handle in handles if not handle.once]

        ok = 0
        for handle in handles:
            try:
                handle.handler(event)
            except Exception:
                counters.failed += 1
                logger.exception(f"Handler for {event_name} raised", event_name=event_name, subscription=handle.key)
            else:
                counters.delivered += 1
                ok += 1
        return ok

    def subscribe(self, event_name: str, handler: EventHandler, *, once: bool = False) -> SubscriptionHandle:
        """Register ``handler``; with ``once`` it is dropped after one delivery."""
        handle = SubscriptionHandle(next(self._keys), event_name, handler, once)
        self._handlers.setdefault(event_name, []).append(handle)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        handles = self._handlers.get(handle.event_name, [])
        kept = [other for other in handles if other.key != handle.key]
        if len(kept) == len(handles):
            return False
        self._handlers[handle.event_name] = kept
        return True

    def clear(self) -> None:
        """Forget all subscriptions and counters."""
        self._handlers.clear()
        self._counters.clear()

    def get_stats(self) -> dict[str, dict[str, int]]:
        """``{"published", "delivered", "failed"}`` counts per event name."""
        return {name: asdict(counters) for name, counters in self._counters.items()}
