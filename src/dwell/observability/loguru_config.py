"""Log sinks and timing for Dwell.

Every record goes to stderr (when enabled) and to ``dwell.jsonl``. Records
bound to one of :data:`COMPONENTS` are also copied into a file of their own,
so ``backup.jsonl`` holds only what the backup manager said.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("store", "backup", "exchange", "tracker")

_ROOT_COMPONENT = "dwell"

_CONSOLE_FORMAT = (
    "{time:HH:mm:ss.SSS} <level>{level.name:<7}</level> "
    "<magenta>[{extra[component]}]</magenta> {message}"
)


def _component_filter(component: str) -> Callable[[dict[str, Any]], bool]:
    def accept(record: dict[str, Any]) -> bool:
        return record["extra"].get("component") == component

    return accept


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "10 MB",
    retention: str = "10 days",
    compression: str = "zip",
    enable_console: bool = True,
) -> None:
    """Replace all loguru handlers with Dwell's sinks.

    Parameters
    ----------
    log_dir
        Where the JSONL files go. Without it Dwell logs to stderr only.
    level
        Threshold applied to every sink.
    rotation, retention, compression
        Passed to loguru for each JSONL file.
    enable_console
        Add the stderr sink.
    """
    logger.remove()
    logger.configure(extra={"component": _ROOT_COMPONENT})

    if enable_console:
        logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level, colorize=True, diagnose=False)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    file_options: dict[str, Any] = {
        "level": level,
        "rotation": rotation,
        "retention": retention,
        "compression": compression,
        "serialize": True,
        "diagnose": False,
    }

    logger.add(log_dir / f"{_ROOT_COMPONENT}.jsonl", **file_options)
    for component in COMPONENTS:
        logger.add(log_dir / f"{component}.jsonl", filter=_component_filter(component), **file_options)

    get_logger().debug("Log sinks ready", log_dir=str(log_dir), level=level)


def get_logger(component: str = _ROOT_COMPONENT) -> Any:
    """Loguru logger whose records carry ``extra["component"]``."""
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = _ROOT_COMPONENT,
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Bracket ``operation`` with START/END debug records.

    The END record carries ``duration_ms`` plus whatever the caller put into
    the yielded dict, and is written even when the block raises.

    >>> with timing_context("backup.create", component="backup") as ctx:
    ...     ctx["backup_id"] = manager.create_backup()
    """
    log = get_logger(component).bind(timing=True, operation=operation)
    context: dict[str, Any] = dict(metadata)
    started = time.perf_counter()

    log.debug(f"START: {operation}", phase="start", **metadata)
    try:
        yield context
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        log.debug(f"END: {operation}", phase="end", duration_ms=elapsed_ms, **context)
