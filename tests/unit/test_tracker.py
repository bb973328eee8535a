"""Tests for the per-domain tracker tick."""

from __future__ import annotations

import threading
from unittest import mock

import pytest

from dwell.core.errors import PersistenceError
from dwell.core.events import STORE_PERSIST_FAILED
from dwell.core.gate import GateState
from dwell.tracker import TickOutcome, Tracker


@pytest.fixture
def tracker(store, clock, event_bus):
    return Tracker("example.com", store, clock=clock, event_bus=event_bus)


def run_ticks(tracker, clock, count):
    outcomes = []
    for _ in range(count):
        outcomes.append(tracker.tick())
        clock.advance(seconds=1)
    return outcomes


def test_five_active_ticks(tracker, store, clock):
    """Ticks at 12:00:00 .. 12:00:04 put 5 s everywhere."""
    outcomes = run_ticks(tracker, clock, 5)

    assert all(outcome == TickOutcome(credited=True, persisted=True) for outcome in outcomes)
    assert store.snapshot()["example.com"] == {
        "totalTime": 5,
        "sessions": [],
        "hourlyData": {"2024-01-01-12": 5},
        "dailyData": {"2024-01-01": 5},
        "weeklyData": {"2024-W01": 5},
    }


def test_hidden_ticks_add_nothing(tracker, store, clock):
    run_ticks(tracker, clock, 2)
    tracker.visibility_changed(False)

    outcomes = run_ticks(tracker, clock, 3)

    assert [outcome.credited for outcome in outcomes] == [False, False, False]
    assert store.get("example.com").total_time == 2
    assert tracker.state is GateState.HIDDEN


def test_idle_ticks_add_nothing(tracker, store, clock):
    """No input for more than 30 s stops crediting until the next input."""
    run_ticks(tracker, clock, 40)
    assert store.get("example.com").total_time == 31

    tracker.record_input("scroll")
    run_ticks(tracker, clock, 2)

    assert store.get("example.com").total_time == 33


def test_visibility_restored_resumes(tracker, store, clock):
    tracker.visibility_changed(False)
    run_ticks(tracker, clock, 5)
    tracker.visibility_changed(True)
    run_ticks(tracker, clock, 2)

    assert store.get("example.com").total_time == 2


def test_tick_seconds(store, clock):
    tracker = Tracker("a.com", store, clock=clock, tick_seconds=5)
    tracker.tick()

    assert store.get("a.com").hourly == {"2024-01-01-12": 5}


def test_persist_failure_reported(tracker, store, backend, event_bus):
    failures = []
    event_bus.subscribe(STORE_PERSIST_FAILED, failures.append)

    with mock.patch.object(backend, "write", side_effect=PersistenceError("Storage quota exceeded")):
        outcome = tracker.tick()

    assert outcome == TickOutcome(credited=True, persisted=False, error="Storage quota exceeded")
    assert failures[0].payload == {"domain": "example.com", "error": "Storage quota exceeded"}
    assert store.snapshot() == {}

    assert tracker.tick().persisted


def test_session_seconds(tracker, clock):
    clock.advance(seconds=90)
    tracker.visibility_changed(False)
    clock.advance(seconds=30)

    assert tracker.session_seconds() == 120


def test_uses_store_event_bus_by_default(store, clock):
    assert Tracker("a.com", store, clock=clock).event_bus is store.event_bus


def test_invalid_arguments(store):
    with pytest.raises(ValueError):
        Tracker("", store)
    with pytest.raises(ValueError):
        Tracker("a.com", store, tick_seconds=0)


def test_start_stop_runs_ticks(store, clock):
    tracker = Tracker("a.com", store, clock=clock)
    ticked = threading.Event()

    with mock.patch.object(store, "apply", side_effect=lambda *args: ticked.set()):
        with tracker:
            assert tracker.is_running()
            assert ticked.wait(timeout=3.0)

    assert not tracker.is_running()
    tracker.stop()


def test_tick_over_invalid_persisted_record(tracker, store, backend):
    backend.write(store.store_key, '{"example.com": {"totalTime": "x"}}')

    outcome = tracker.tick()

    assert outcome == TickOutcome(credited=True, persisted=True)
    assert store.get("example.com").total_time == 1
