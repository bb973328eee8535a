"""Store backups with bounded retention.

A backup is a full snapshot written under
``<storeKey>_backup_<creationTimestampMillis>`` in the same backend as the
store. Creating one always prunes the set down to the ``retention`` newest
backups straight away, ordered by the timestamp embedded in the key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..core.clock import SystemClock
from ..core.errors import BackupError, BackupNotFoundError
from ..observability import get_logger, timing_context

if TYPE_CHECKING:
    from ..core.clock import Clock
    from ..storage.store import AggregateStore

__all__ = [
    "DEFAULT_RETENTION",
    "BackupInfo",
    "BackupManager",
    "backup_key",
    "parse_backup_key",
]

DEFAULT_RETENTION = 5

logger = get_logger("backup")


@dataclass(frozen=True)
class BackupInfo:
    """Information about a backup.

    Attributes
    ----------
    backup_id : str
        Backend key of the backup
    created_ms : int
        Creation time in epoch milliseconds (from the key)
    """

    backup_id: str
    created_ms: int

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_ms / 1000, tz=timezone.utc)


def backup_key(store_key: str, created_ms: int) -> str:
    """Backend key for a backup of ``store_key`` taken at ``created_ms``."""
    return f"{store_key}_backup_{created_ms}"


def parse_backup_key(store_key: str, key: str) -> int | None:
    """Creation timestamp of a backup key, or None if it is not one."""
    prefix = f"{store_key}_backup_"
    if not key.startswith(prefix):
        return None

    suffix = key[len(prefix) :]
    if not (suffix.isascii() and suffix.isdigit()):
        return None
    return int(suffix)


class BackupManager:
    """Create, list, prune and restore store backups.

    Example:
        >>> manager = BackupManager(store)
        >>> backup_id = manager.create_backup()
        >>> [info.backup_id for info in manager.list_backups()]
        ['websiteTimeTracker_backup_1704110400000']
        >>> manager.restore_backup(backup_id)
    """

    def __init__(
        self,
        store: AggregateStore,
        *,
        retention: int = DEFAULT_RETENTION,
        clock: Clock | None = None,
    ) -> None:
        if retention < 1:
            raise ValueError(f"Retention must be at least 1, got: {retention}")

        self.store = store
        self.backend = store.backend
        self.retention = retention
        self.clock = clock or SystemClock()

    def create_backup(self) -> str:
        """Snapshot the store into a new backup and prune old ones.

        Returns
        -------
        str
            Backup ID (backend key)

        Raises
        ------
        PersistenceError
            If the backup cannot be written
        """
        with timing_context("backup.create", component="backup") as ctx:
            created_ms = int(self.clock.now().timestamp() * 1000)

            # Keep keys unique and strictly increasing for back-to-back calls
            existing = [info.created_ms for info in self.list_backups()]
            if existing and created_ms <= max(existing):
                created_ms = max(existing) + 1

            key = backup_key(self.store.store_key, created_ms)
            snapshot = self.store.snapshot()
            self.backend.write(key, json.dumps(snapshot, ensure_ascii=False, separators=(",", ":")))
            ctx["backup_id"] = key

            deleted = self.cleanup_old_backups()

        logger.info("Backup created", backup_id=key, domains=len(snapshot), pruned=deleted)
        return key

    def list_backups(self) -> list[BackupInfo]:
        """Surviving backups, newest first.

        Keys whose timestamp does not parse are left out.
        """
        backups = []
        for key in self.backend.keys():
            created_ms = parse_backup_key(self.store.store_key, key)
            if created_ms is None:
                continue
            backups.append(BackupInfo(backup_id=key, created_ms=created_ms))

        backups.sort(key=lambda b: b.created_ms, reverse=True)
        return backups

    def cleanup_old_backups(self, retention: int | None = None) -> int:
        """Delete all but the ``retention`` newest backups.

        Returns
        -------
        int
            Number of backups deleted
        """
        keep = self.retention if retention is None else retention
        to_delete = self.list_backups()[keep:]

        for backup in to_delete:
            self.backend.delete(backup.backup_id)
            logger.debug("Backup pruned", backup_id=backup.backup_id)

        return len(to_delete)

    def read_backup(self, backup_id: str) -> dict:
        """Load a backup's store data.

        Raises
        ------
        BackupNotFoundError
            If no backup exists under ``backup_id``
        BackupError
            If the backup content is not a valid store
        """
        if parse_backup_key(self.store.store_key, backup_id) is None:
            raise BackupNotFoundError(backup_id)

        raw = self.backend.read(backup_id)
        if raw is None:
            raise BackupNotFoundError(backup_id)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BackupError(f"Backup {backup_id} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise BackupError(f"Backup {backup_id} does not contain a store")
        return data

    def restore_backup(self, backup_id: str) -> None:
        """Replace the live store with a backup's contents (destructive).

        Raises
        ------
        BackupNotFoundError
            If no backup exists under ``backup_id``
        BackupError
            If the backup content is not a valid store
        PersistenceError
            If the store cannot be written
        """
        with timing_context("backup.restore", component="backup", backup_id=backup_id):
            data = self.read_backup(backup_id)
            try:
                self.store.restore(data)
            except ValueError as exc:
                raise BackupError(f"Backup {backup_id} does not contain a store: {exc}") from exc

        logger.info("Backup restored", backup_id=backup_id, domains=len(data))
