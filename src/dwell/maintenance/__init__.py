"""Maintenance: store backups."""

from .backup import DEFAULT_RETENTION, BackupInfo, BackupManager, backup_key, parse_backup_key

__all__ = [
    "DEFAULT_RETENTION",
    "BackupInfo",
    "BackupManager",
    "backup_key",
    "parse_backup_key",
]
