"""Shared fixtures for Dwell tests."""

import os
from datetime import datetime, timezone

import pytest

from dwell.core.clock import ManualClock
from dwell.core.events import EventBus
from dwell.storage.backends import MemoryBackend
from dwell.storage.store import AggregateStore


@pytest.fixture
def clock():
    """Manual clock at 2024-01-01 12:00:00 UTC."""
    return ManualClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend, event_bus):
    """Aggregate store over an in-memory backend (UTC keys)."""
    return AggregateStore(backend, event_bus=event_bus)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clean DWELL_* environment variables and global settings around each test."""
    original_env = os.environ.copy()

    for key in [k for k in os.environ if k.startswith("DWELL_")]:
        del os.environ[key]

    import dwell.config.settings as settings_module

    monkeypatch.setattr(settings_module, "_settings", None)

    yield

    os.environ.clear()
    os.environ.update(original_env)
