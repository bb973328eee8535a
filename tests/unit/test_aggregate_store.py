"""Tests for the aggregate store."""

from __future__ import annotations

import json
import math
from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest

from dwell.core.errors import InvalidDeltaError, PersistenceError
from dwell.core.events import STORE_CLEARED, STORE_RESTORED
from dwell.storage.backends import MemoryBackend
from dwell.storage.store import AggregateStore, validate_delta

NOON = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_apply_creates_record_lazily(store):
    assert "example.com" not in store

    store.apply("example.com", NOON, 5)

    assert store.snapshot() == {
        "example.com": {
            "totalTime": 5,
            "sessions": [],
            "hourlyData": {"2024-01-01-12": 5},
            "dailyData": {"2024-01-01": 5},
            "weeklyData": {"2024-W01": 5},
        }
    }


def test_apply_twice_equals_apply_sum(backend):
    split = AggregateStore(MemoryBackend())
    split.apply("a.com", NOON, 3)
    split.apply("a.com", NOON, 4)

    combined = AggregateStore(MemoryBackend())
    combined.apply("a.com", NOON, 7)

    assert split.snapshot() == combined.snapshot()


def test_total_equals_sum_of_daily(store):
    for hour in range(0, 48, 5):
        store.apply("a.com", NOON + timedelta(hours=hour), hour + 1)

    record = store.get("a.com")
    assert record.total_time == sum(record.daily.values())
    assert record.total_time == sum(record.hourly.values())
    assert record.total_time == sum(record.weekly.values())


def test_apply_uses_configured_timezone():
    store = AggregateStore(MemoryBackend(), timezone="America/New_York")
    store.apply("a.com", datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc), 1)

    record = store.get("a.com")
    assert record.hourly == {"2023-12-31-22": 1}
    assert record.daily == {"2023-12-31": 1}
    assert record.weekly == {"2023-W52": 1}


def test_zero_delta_is_noop(store, backend):
    store.apply("a.com", NOON, 0)

    assert backend.read(store.store_key) is None
    assert store.snapshot() == {}


@pytest.mark.parametrize("delta", [-1, 1.5, math.inf, math.nan, "5", None, True])
def test_invalid_delta_rejected_before_touching_store(store, delta):
    store.apply("a.com", NOON, 1)
    before = store.snapshot()

    with pytest.raises(InvalidDeltaError):
        store.apply("a.com", NOON, delta)

    assert store.snapshot() == before


def test_validate_delta_accepts_integral_float():
    assert validate_delta(3.0) == 3
    assert validate_delta(0) == 0
    assert isinstance(InvalidDeltaError("x"), ValueError)


def test_empty_domain_rejected(store):
    with pytest.raises(ValueError):
        store.apply("", NOON, 1)


def test_failed_write_keeps_previous_store(store, backend):
    store.apply("a.com", NOON, 1)

    with mock.patch.object(backend, "write", side_effect=PersistenceError("quota")):
        with pytest.raises(PersistenceError):
            store.apply("a.com", NOON, 10)

    assert store.get("a.com").total_time == 1


def test_apply_keeps_unknown_record_fields(store):
    store.restore({"a.com": {"totalTime": 1, "dailyData": {"2024-01-01": 1}, "favicon": "x.png"}})

    store.apply("a.com", NOON, 1)

    assert store.snapshot()["a.com"]["favicon"] == "x.png"
    assert store.get("a.com").total_time == 2


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        '{"a.com": 5}',
        "",
        '{"a.com": {"totalTime": "x"}}',
        '{"a.com": {"totalTime": 3, "dailyData": {"2024-01-01": -1}}}',
        '{"a.com": {"totalTime": 3.0}}',
    ],
)
def test_malformed_persisted_data_is_empty_store(backend, raw):
    backend.write("websiteTimeTracker", raw)
    store = AggregateStore(backend)

    assert store.load() == {}
    store.apply("a.com", NOON, 1)
    assert store.get("a.com").total_time == 1


def test_snapshot_is_deep_copy(store):
    store.apply("a.com", NOON, 1)
    snapshot = store.snapshot()
    snapshot["a.com"]["dailyData"]["2024-01-01"] = 999

    assert store.get("a.com").daily == {"2024-01-01": 1}


def test_restore_snapshot_round_trip(store, event_bus):
    restored = []
    event_bus.subscribe(STORE_RESTORED, restored.append)
    store.apply("a.com", NOON, 4)
    store.apply("b.org", NOON + timedelta(days=8), 2)
    snapshot = store.snapshot()

    store.apply("c.net", NOON, 1)
    store.restore(snapshot)

    assert store.snapshot() == snapshot
    assert restored[-1].payload["domains"] == 2


def test_restore_is_destructive(store):
    store.apply("a.com", NOON, 4)
    store.restore({"b.org": {"totalTime": 1}})

    assert store.domains() == ["b.org"]


def test_restore_rejects_non_store(store):
    with pytest.raises(ValueError):
        store.restore({"a.com": 5})


@pytest.mark.parametrize(
    "blob",
    [
        {"a.com": {"totalTime": "abc"}},
        {"a.com": {"dailyData": {}}},
        {"a.com": {"totalTime": 1, "hourlyData": {"2024-01-01-12": 1.5}}},
        {"a.com": {"totalTime": 1, "sessions": "none"}},
    ],
)
def test_restore_rejects_invalid_record(store, blob):
    store.apply("a.com", NOON, 2)

    with pytest.raises(ValueError, match="Not a valid store"):
        store.restore(blob)

    store.apply("a.com", NOON, 1)
    assert store.get("a.com").total_time == 3


def test_clear(store, backend, event_bus):
    cleared = []
    event_bus.subscribe(STORE_CLEARED, cleared.append)
    store.apply("a.com", NOON, 4)

    store.clear()

    assert store.snapshot() == {}
    assert backend.read(store.store_key) is None
    assert len(cleared) == 1


def test_persisted_layout(store, backend):
    store.apply("a.com", NOON, 2)

    persisted = json.loads(backend.read("websiteTimeTracker"))
    assert set(persisted["a.com"]) == {"totalTime", "sessions", "hourlyData", "dailyData", "weeklyData"}
