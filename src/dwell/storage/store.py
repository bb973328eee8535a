"""Aggregate store: per-domain totals and hour/day/week buckets.

Every mutation is a read-modify-write of the whole store against the
backend under one key, so readers never see a half-applied update: the new
state is built on a copy and handed to the backend in one ``write`` call.

Known limitation: several independent instances writing the same backend
(e.g. one tracker per open tab) each read, modify and write the full store.
Two interleaved ``apply`` calls can therefore lose one increment. There is
no cross-instance arbitration; reconcile diverged stores with
``dwell.rollups.merge``.
"""

from __future__ import annotations

import copy
import json
import math
from datetime import tzinfo
from numbers import Integral, Real
from typing import TYPE_CHECKING, Any

from ..core.errors import InvalidDeltaError
from ..core.events import STORE_CLEARED, STORE_RESTORED
from ..core.time import Timestamp, day_key, hour_key, resolve_timezone, week_key
from ..observability import get_logger
from .records import DomainRecord, StoreData, store_errors

if TYPE_CHECKING:
    from ..core.events import EventBus
    from .backends import StorageBackend

__all__ = [
    "DEFAULT_STORE_KEY",
    "AggregateStore",
    "validate_delta",
]

DEFAULT_STORE_KEY = "websiteTimeTracker"

logger = get_logger("store")


def validate_delta(delta_seconds: Any) -> int:
    """Check an ``apply`` delta and return it as int.

    Integral floats (``3.0``) are accepted.

    Raises
    ------
    InvalidDeltaError
        If the delta is negative, non-finite, non-integral or not a number
    """
    if isinstance(delta_seconds, bool) or not isinstance(delta_seconds, Real):
        raise InvalidDeltaError(f"Delta must be a number of seconds, got {delta_seconds!r}")

    if isinstance(delta_seconds, Integral):
        value = int(delta_seconds)
    else:
        as_float = float(delta_seconds)
        if not math.isfinite(as_float):
            raise InvalidDeltaError(f"Delta must be finite, got {delta_seconds!r}")
        if not as_float.is_integer():
            raise InvalidDeltaError(f"Delta must be whole seconds, got {delta_seconds!r}")
        value = int(as_float)

    if value < 0:
        raise InvalidDeltaError(f"Delta must be non-negative, got {delta_seconds!r}")

    return value


class AggregateStore:
    """Store of domain records persisted under a single backend key.

    Parameters
    ----------
    backend
        Persistence port
    store_key
        Backend key holding the serialized store
    timezone
        Timezone whose local calendar defines bucket keys
    event_bus
        Optional bus for ``store.restored`` / ``store.cleared``

    Example:
        >>> store = AggregateStore(MemoryBackend())
        >>> store.apply("example.com", datetime(2024, 1, 1, 12, tzinfo=timezone.utc), 5)
        >>> store.get("example.com").total_time
        5
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        store_key: str = DEFAULT_STORE_KEY,
        timezone: str | tzinfo | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.backend = backend
        self.store_key = store_key
        self.timezone = resolve_timezone(timezone)
        self.event_bus = event_bus

    # ------------------------------------------------------------------
    # Persistence contract
    # ------------------------------------------------------------------

    def load(self) -> StoreData:
        """Read the persisted store.

        Missing, unreadable or malformed data is treated as an empty store.
        """
        raw = self.backend.read(self.store_key)
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("Persisted store is not valid JSON, treating as empty", store_key=self.store_key, error=str(exc))
            return {}

        errors = store_errors(data)
        if errors:
            logger.warning(
                "Persisted store fails validation, treating as empty",
                store_key=self.store_key,
                errors=errors[:5],
            )
            return {}

        return data

    def save(self, data: StoreData) -> None:
        """Persist the whole store in one backend write.

        Raises
        ------
        PersistenceError
            If the backend write fails
        """
        self.backend.write(self.store_key, json.dumps(data, ensure_ascii=False, separators=(",", ":")))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def apply(self, domain: str, timestamp: Timestamp, delta_seconds: int) -> None:
        """Credit ``delta_seconds`` to ``domain`` at ``timestamp``.

        Adds to ``totalTime`` and to the hour, day and week buckets of the
        timestamp, creating the record and buckets on first use. Each call
        adds again; there is no deduplication. A zero delta is accepted and
        leaves the store untouched.

        Raises
        ------
        InvalidDeltaError
            If the delta is negative, non-finite or non-integral
        PersistenceError
            If the store cannot be written; the persisted store is unchanged
        """
        seconds = validate_delta(delta_seconds)
        if not isinstance(domain, str) or not domain:
            raise ValueError("Domain must be a non-empty string")
        if seconds == 0:
            return

        hour = hour_key(timestamp, self.timezone)
        day = day_key(timestamp, self.timezone)
        week = week_key(timestamp, self.timezone)

        data = self.load()
        record = DomainRecord.from_dict(data[domain]) if domain in data else DomainRecord()
        record.add(hour, day, week, seconds)

        updated = dict(data)
        updated[domain] = self._merge_record_dict(data.get(domain), record)
        self.save(updated)

    def snapshot(self) -> StoreData:
        """Deep copy of the entire persisted store."""
        return copy.deepcopy(self.load())

    def restore(self, blob: StoreData) -> None:
        """Replace the entire store with ``blob`` (no merge).

        Raises
        ------
        ValueError
            If ``blob`` is not a valid store (e.g. a non-integer ``totalTime``)
        PersistenceError
            If the store cannot be written
        """
        errors = store_errors(blob)
        if errors:
            raise ValueError(f"Not a valid store: {errors[0]}")

        self.save(copy.deepcopy(blob))
        logger.info("Store restored", store_key=self.store_key, domains=len(blob))
        if self.event_bus is not None:
            self.event_bus.publish(STORE_RESTORED, {"store_key": self.store_key, "domains": len(blob)})

    def clear(self) -> None:
        """Remove every domain record."""
        self.backend.delete(self.store_key)
        logger.info("Store cleared", store_key=self.store_key)
        if self.event_bus is not None:
            self.event_bus.publish(STORE_CLEARED, {"store_key": self.store_key})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, domain: str) -> DomainRecord:
        """Record for ``domain``; an empty record if it was never credited."""
        data = self.load()
        if domain in data:
            return DomainRecord.from_dict(data[domain])
        return DomainRecord()

    def domains(self) -> list[str]:
        return list(self.load())

    def __contains__(self, domain: object) -> bool:
        return domain in self.load()

    @staticmethod
    def _merge_record_dict(original: dict[str, Any] | None, record: DomainRecord) -> dict[str, Any]:
        # Keep unknown fields of imported records intact
        merged = dict(original or {})
        merged.update(record.to_dict())
        return merged
