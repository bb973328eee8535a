"""Key-value persistence backends.

The store and its backups live under string keys (``<storeKey>`` and
``<storeKey>_backup_<millis>``) in a backend that holds serialized text.
Two backends are provided:

- ``MemoryBackend``: dict-backed, for tests and embedding
- ``DirectoryBackend``: one ``<key>.json`` file per key with atomic writes
  (temp file in the same directory, fsync, rename)

Backends raise ``PersistenceError`` for any I/O failure.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from ..core.errors import PersistenceError

__all__ = [
    "DirectoryBackend",
    "MemoryBackend",
    "StorageBackend",
]

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class StorageBackend(Protocol):
    """Persistence port used by the store and the backup manager."""

    def read(self, key: str) -> str | None:
        """Return stored text, or None if the key is absent."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the value under ``key`` in a single step."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""
        ...

    def keys(self) -> list[str]:
        """All keys currently stored."""
        ...


class MemoryBackend:
    """In-memory backend.

    Parameters
    ----------
    quota_bytes
        Optional limit on total stored characters; writes that would exceed it
        raise ``PersistenceError`` the way a full browser storage area would.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota_bytes:
                raise PersistenceError(f"Storage quota exceeded writing {key}")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class DirectoryBackend:
    """File-per-key backend in a directory.

    Example:
        >>> backend = DirectoryBackend(Path("data"))
        >>> backend.write("websiteTimeTracker", "{}")
        >>> backend.keys()
        ['websiteTimeTracker']
    """

    suffix = ".json"

    def __init__(self, root: Path, *, fsync: bool = True) -> None:
        self.root = Path(root)
        self.fsync = fsync

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}{self.suffix}"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path: Path | None = None

        try:
            self.root.mkdir(parents=True, exist_ok=True)

            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.root,
                prefix=f".{path.name}.tmp",
                delete=False,
            ) as tmp_file:
                tmp_path = Path(tmp_file.name)
                tmp_file.write(value)
                tmp_file.flush()
                if self.fsync:
                    os.fsync(tmp_file.fileno())

            # Atomic rename
            os.replace(tmp_path, path)
            tmp_path = None

            if self.fsync:
                self._fsync_dir()

        except OSError as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to delete {path}: {exc}") from exc

    def keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            p.name[: -len(self.suffix)]
            for p in self.root.glob(f"*{self.suffix}")
            if p.is_file() and not p.name.startswith(".")
        )

    def _fsync_dir(self) -> None:
        # Not every platform allows opening a directory
        try:
            fd = os.open(self.root, os.O_RDONLY)
        except OSError:
            return
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
