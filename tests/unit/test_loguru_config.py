"""Tests for loguru configuration and component logs."""

from __future__ import annotations

import json

import pytest
from loguru import logger

from dwell.observability import COMPONENTS, configure_loguru, get_logger, timing_context


@pytest.fixture
def log_dir(tmp_path):
    directory = tmp_path / "logs"
    configure_loguru(log_dir=directory, level="DEBUG", enable_console=False)
    yield directory
    logger.remove()


def read_records(path):
    return [json.loads(line)["record"] for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_component_files_created(log_dir):
    get_logger("store").info("hello")
    logger.remove()

    assert (log_dir / "dwell.jsonl").exists()
    for component in COMPONENTS:
        assert (log_dir / f"{component}.jsonl").exists()


def test_records_routed_by_component(log_dir):
    get_logger("backup").info("Backup created", backup_id="k_backup_1")
    get_logger("store").warning("Store warning")
    logger.remove()

    backup_records = read_records(log_dir / "backup.jsonl")
    assert [r["message"] for r in backup_records] == ["Backup created"]
    assert backup_records[0]["extra"]["backup_id"] == "k_backup_1"

    store_messages = [r["message"] for r in read_records(log_dir / "store.jsonl")]
    assert store_messages == ["Store warning"]

    all_messages = [r["message"] for r in read_records(log_dir / "dwell.jsonl")]
    assert "Backup created" in all_messages
    assert "Store warning" in all_messages


def test_timing_context_logs_duration(log_dir):
    with timing_context("backup.create", component="backup", domains=3) as ctx:
        ctx["backup_id"] = "k_backup_2"
    logger.remove()

    records = read_records(log_dir / "backup.jsonl")
    start, end = records
    assert start["message"] == "START: backup.create"
    assert end["message"] == "END: backup.create"
    assert end["extra"]["duration_ms"] >= 0
    assert end["extra"]["backup_id"] == "k_backup_2"
    assert end["extra"]["domains"] == 3


def test_timing_context_reraises(log_dir):
    with pytest.raises(RuntimeError):
        with timing_context("store.import", component="exchange"):
            raise RuntimeError("bad")
