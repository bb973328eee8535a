"""Exception hierarchy for Dwell."""

from __future__ import annotations

__all__ = [
    "BackupError",
    "BackupNotFoundError",
    "DwellError",
    "InvalidDeltaError",
    "PersistenceError",
]


class DwellError(Exception):
    """Base class for Dwell errors."""


class InvalidDeltaError(DwellError, ValueError):
    """Raised when ``apply`` gets a negative, non-integral or non-finite delta."""


class PersistenceError(DwellError):
    """Raised when the storage backend cannot read or write a key."""


class BackupError(DwellError):
    """Raised when a backup operation fails."""


class BackupNotFoundError(BackupError):
    """Raised when a named backup does not exist."""

    def __init__(self, backup_id: str) -> None:
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id
