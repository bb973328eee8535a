"""Tests for store backups with bounded retention."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from dwell.core.errors import BackupError, BackupNotFoundError
from dwell.core.events import STORE_RESTORED
from dwell.maintenance.backup import BackupInfo, BackupManager, backup_key, parse_backup_key

NOON = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
NOON_MS = 1704110400000


@pytest.fixture
def manager(store, clock):
    return BackupManager(store, clock=clock)


def test_backup_key_format():
    assert backup_key("websiteTimeTracker", NOON_MS) == "websiteTimeTracker_backup_1704110400000"
    assert parse_backup_key("websiteTimeTracker", "websiteTimeTracker_backup_1704110400000") == NOON_MS


@pytest.mark.parametrize(
    "key",
    [
        "websiteTimeTracker",
        "websiteTimeTracker_backup_",
        "websiteTimeTracker_backup_abc",
        "websiteTimeTracker_backup_\u00b2",
        "websiteTimeTracker_backup_\u0663",
        "other_backup_1",
    ],
)
def test_parse_backup_key_rejects(key):
    assert parse_backup_key("websiteTimeTracker", key) is None


def test_create_backup_writes_snapshot(manager, store, backend):
    store.apply("a.com", NOON, 5)

    backup_id = manager.create_backup()

    assert backup_id == f"websiteTimeTracker_backup_{NOON_MS}"
    assert json.loads(backend.read(backup_id)) == store.snapshot()


def test_back_to_back_backups_get_distinct_keys(manager):
    """Same clock reading: later backups are bumped by 1 ms."""
    first = manager.create_backup()
    second = manager.create_backup()

    assert first != second
    assert parse_backup_key("websiteTimeTracker", second) == NOON_MS + 1


def test_six_backups_keep_newest_five(manager, clock):
    created = []
    for _ in range(6):
        created.append(manager.create_backup())
        clock.advance(seconds=1)

    backups = manager.list_backups()

    assert len(backups) == 5
    assert created[0] not in {b.backup_id for b in backups}
    assert [b.backup_id for b in backups] == list(reversed(created[1:]))


def test_list_backups_newest_first_numeric_order(manager, backend):
    """Ordering follows the timestamp, not the key text."""
    backend.write("websiteTimeTracker_backup_999", "{}")
    backend.write("websiteTimeTracker_backup_1000", "{}")
    backend.write("websiteTimeTracker_backup_junk", "{}")
    backend.write("websiteTimeTracker_backup_\u00b2", "{}")

    backups = manager.list_backups()

    assert backups == [
        BackupInfo("websiteTimeTracker_backup_1000", 1000),
        BackupInfo("websiteTimeTracker_backup_999", 999),
    ]
    assert backups[0].created_at == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_cleanup_old_backups_explicit(manager, clock):
    for _ in range(4):
        manager.create_backup()
        clock.advance(seconds=1)

    assert manager.cleanup_old_backups(retention=2) == 2
    assert len(manager.list_backups()) == 2


def test_retention_setting(store, clock):
    manager = BackupManager(store, retention=2, clock=clock)
    for _ in range(3):
        manager.create_backup()
        clock.advance(seconds=1)

    assert len(manager.list_backups()) == 2

    with pytest.raises(ValueError):
        BackupManager(store, retention=0)


def test_restore_backup(manager, store, event_bus):
    restored = []
    event_bus.subscribe(STORE_RESTORED, restored.append)
    store.apply("a.com", NOON, 5)
    backup_id = manager.create_backup()
    snapshot = store.snapshot()

    store.apply("a.com", NOON, 100)
    store.apply("b.org", NOON, 1)
    manager.restore_backup(backup_id)

    assert store.snapshot() == snapshot
    assert len(restored) == 1


def test_restore_missing_backup(manager):
    with pytest.raises(BackupNotFoundError, match="Backup not found"):
        manager.restore_backup("websiteTimeTracker_backup_1")

    with pytest.raises(BackupNotFoundError):
        manager.restore_backup("websiteTimeTracker")


def test_restore_corrupt_backup(manager, backend, store):
    store.apply("a.com", NOON, 5)
    backend.write("websiteTimeTracker_backup_5", "{not json")

    with pytest.raises(BackupError):
        manager.restore_backup("websiteTimeTracker_backup_5")

    assert store.get("a.com").total_time == 5


def test_backups_do_not_touch_store_key(manager, store, backend):
    store.apply("a.com", NOON, 5)
    manager.create_backup()

    assert store.domains() == ["a.com"]
    assert "websiteTimeTracker" in backend.keys()


def test_restore_backup_with_invalid_record(manager, backend, store):
    store.apply("a.com", NOON, 5)
    backend.write("websiteTimeTracker_backup_6", json.dumps({"a.com": {"totalTime": "abc"}}))

    with pytest.raises(BackupError, match="totalTime"):
        manager.restore_backup("websiteTimeTracker_backup_6")

    assert store.get("a.com").total_time == 5


def test_create_backup_ignores_unicode_digit_keys(manager, backend):
    backend.write("websiteTimeTracker_backup_²", "{}")

    backup_id = manager.create_backup()

    assert [b.backup_id for b in manager.list_backups()] == [backup_id]
