"""Tests for key-value storage backends."""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest

from dwell.core.errors import PersistenceError
from dwell.storage.backends import DirectoryBackend, MemoryBackend


class TestMemoryBackend:
    def test_read_write_delete(self):
        backend = MemoryBackend()

        assert backend.read("k") is None
        backend.write("k", "v")
        assert backend.read("k") == "v"
        assert backend.keys() == ["k"]

        backend.delete("k")
        backend.delete("k")
        assert backend.read("k") is None

    def test_quota_exceeded_keeps_previous_value(self):
        backend = MemoryBackend(quota_bytes=10)
        backend.write("k", "short")

        with pytest.raises(PersistenceError, match="quota"):
            backend.write("k", "x" * 100)

        assert backend.read("k") == "short"


class TestDirectoryBackend:
    def test_write_creates_directory(self, tmp_path: Path):
        backend = DirectoryBackend(tmp_path / "data")
        backend.write("websiteTimeTracker", '{"a": 1}')

        assert (tmp_path / "data" / "websiteTimeTracker.json").read_text(encoding="utf-8") == '{"a": 1}'
        assert backend.read("websiteTimeTracker") == '{"a": 1}'

    def test_missing_key(self, tmp_path: Path):
        backend = DirectoryBackend(tmp_path)

        assert backend.read("nothing") is None
        assert DirectoryBackend(tmp_path / "absent").keys() == []

    def test_keys_sorted_and_skip_temp_files(self, tmp_path: Path):
        backend = DirectoryBackend(tmp_path, fsync=False)
        backend.write("b", "1")
        backend.write("a", "2")
        (tmp_path / ".a.json.tmpxyz.json").write_text("junk")
        (tmp_path / "notes.txt").write_text("junk")

        assert backend.keys() == ["a", "b"]

    def test_overwrite_is_atomic_on_failure(self, tmp_path: Path):
        """A failed replace leaves the old value and no temp files."""
        backend = DirectoryBackend(tmp_path)
        backend.write("store", "old")

        with mock.patch("dwell.storage.backends.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                backend.write("store", "new")

        assert backend.read("store") == "old"
        assert sorted(os.listdir(tmp_path)) == ["store.json"]

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
    def test_rejects_unsafe_keys(self, tmp_path: Path, key):
        backend = DirectoryBackend(tmp_path)

        with pytest.raises(PersistenceError, match="Invalid storage key"):
            backend.write(key, "x")

    def test_delete(self, tmp_path: Path):
        backend = DirectoryBackend(tmp_path)
        backend.write("k", "v")
        backend.delete("k")
        backend.delete("k")

        assert backend.keys() == []
