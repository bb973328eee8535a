"""Domain record model and store wire format.

On the wire (persisted JSON, exports, backups) a store is a mapping from
domain to::

    {
        "totalTime": 7200,
        "sessions": [],
        "hourlyData": {"2024-01-01-14": 3600, ...},
        "dailyData": {"2024-01-01": 7200, ...},
        "weeklyData": {"2024-W01": 25200, ...},
    }
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

import jsonschema  # type: ignore[import-untyped]
import jsonschema.validators  # type: ignore[import-untyped]

__all__ = [
    "BUCKET_FIELDS",
    "BUCKET_SCHEMA",
    "RECORD_SCHEMA",
    "STORE_SCHEMA",
    "DomainRecord",
    "StoreValidator",
    "schema_errors",
    "store_errors",
    "Store",
    "StoreData",
    "store_from_dict",
    "store_to_dict",
]

BUCKET_FIELDS = ("hourlyData", "dailyData", "weeklyData")

StoreData = dict[str, dict[str, Any]]
"""Wire form of a store: domain -> record dict."""


@dataclass
class DomainRecord:
    """Aggregated time for one domain.

    Attributes
    ----------
    total_time : int
        Seconds credited overall; equals the sum of ``daily``
    hourly : dict[str, int]
        Hour key -> seconds
    daily : dict[str, int]
        Day key -> seconds
    weekly : dict[str, int]
        ISO week key -> seconds
    sessions : list
        Opaque entries carried over from imported data; never populated here
    """

    total_time: int = 0
    hourly: dict[str, int] = field(default_factory=dict)
    daily: dict[str, int] = field(default_factory=dict)
    weekly: dict[str, int] = field(default_factory=dict)
    sessions: list[Any] = field(default_factory=list)

    def add(self, hour: str, day: str, week: str, seconds: int) -> None:
        """Credit ``seconds`` to the total and to one bucket of each resolution."""
        self.total_time += seconds
        self.hourly[hour] = self.hourly.get(hour, 0) + seconds
        self.daily[day] = self.daily.get(day, 0) + seconds
        self.weekly[week] = self.weekly.get(week, 0) + seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to wire dictionary."""
        return {
            "totalTime": self.total_time,
            "sessions": copy.deepcopy(self.sessions),
            "hourlyData": dict(self.hourly),
            "dailyData": dict(self.daily),
            "weeklyData": dict(self.weekly),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainRecord:
        """Build from wire dictionary; absent fields default to empty."""
        return cls(
            total_time=int(data.get("totalTime", 0)),
            hourly={str(k): int(v) for k, v in (data.get("hourlyData") or {}).items()},
            daily={str(k): int(v) for k, v in (data.get("dailyData") or {}).items()},
            weekly={str(k): int(v) for k, v in (data.get("weeklyData") or {}).items()},
            sessions=copy.deepcopy(list(data.get("sessions") or [])),
        )


Store = dict[str, DomainRecord]
"""In-memory store: domain -> record."""


def store_from_dict(data: StoreData) -> Store:
    """Wire dict -> in-memory store."""
    return {str(domain): DomainRecord.from_dict(record) for domain, record in data.items()}


def store_to_dict(store: Store) -> StoreData:
    """In-memory store -> wire dict."""
    return {domain: record.to_dict() for domain, record in store.items()}


def _is_int(checker: Any, instance: Any) -> bool:
    # Draft 7 counts 100.0 as an integer; stored counters must be real ints
    return isinstance(instance, int) and not isinstance(instance, bool)


StoreValidator = jsonschema.validators.extend(
    jsonschema.Draft7Validator,
    type_checker=jsonschema.Draft7Validator.TYPE_CHECKER.redefine("integer", _is_int),
)
"""Draft 7 validator that rejects whole-number floats as integers."""

BUCKET_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {"type": "integer", "minimum": 0},
}

RECORD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["totalTime"],
    "properties": {
        "totalTime": {"type": "integer", "minimum": 0},
        "sessions": {"type": "array"},
        "hourlyData": BUCKET_SCHEMA,
        "dailyData": BUCKET_SCHEMA,
        "weeklyData": BUCKET_SCHEMA,
    },
}

STORE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": RECORD_SCHEMA,
}

_store_validator = StoreValidator(STORE_SCHEMA)


def schema_errors(validator: Any, instance: Any) -> list[str]:
    """``[path] message`` strings for every schema violation of ``instance``."""
    errors = []
    for error in validator.iter_errors(instance):
        error_path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"[{error_path}] {error.message}")
    return errors


def store_errors(data: Any) -> list[str]:
    """Schema errors of a wire-form store (empty when valid)."""
    return schema_errors(_store_validator, data)
