"""Common CLI utilities: stable exit codes, execution context and error mapping."""

from __future__ import annotations

import json
import traceback
from dataclasses import replace
from enum import IntEnum
from pathlib import Path
from typing import Any

import click

from ..config.settings import ConfigError, Settings
from ..core.errors import BackupError, BackupNotFoundError, InvalidDeltaError, PersistenceError
from ..observability import configure_loguru
from ..service import DwellService, create_service

__all__ = [
    "CONTEXT_SETTINGS",
    "CLIContext",
    "ClickConfirmation",
    "ExitCode",
    "FileExporter",
    "exit_code_for",
    "handle_cli_error",
    "pass_cli_context",
]

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    CANCELLED = 1  # User declined a confirmation
    VALIDATION_ERROR = 2  # Bad input (delta, import payload, usage)
    NOT_FOUND = 3  # Unknown backup
    IO_ERROR = 5  # Storage read/write failure
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


class CLIContext:
    """Per-invocation state shared by all commands.

    Settings and the service are built lazily so that ``--help`` works
    without a valid configuration.
    """

    def __init__(
        self,
        *,
        data_dir: Path | None = None,
        config_file: Path | None = None,
        env_file: Path | None = None,
        json_output: bool = False,
        verbose: bool = False,
    ) -> None:
        self.data_dir = data_dir
        self.config_file = config_file
        self.env_file = env_file
        self.json_output = json_output
        self.verbose = verbose
        self._settings: Settings | None = None
        self._service: DwellService | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            settings = Settings.from_env(self.env_file, self.config_file)
            if self.data_dir is not None:
                settings = replace(settings, data_dir=self.data_dir)
            configure_loguru(
                log_dir=settings.log_dir,
                level="DEBUG" if self.verbose else settings.log_level,
            )
            self._settings = settings
        return self._settings

    @property
    def service(self) -> DwellService:
        if self._service is None:
            self._service = create_service(self.settings)
        return self._service

    def output(self, data: Any, text: str | list[str] | None = None) -> None:
        """Print ``data`` as JSON in --json mode, otherwise ``text``."""
        if self.json_output:
            click.echo(json.dumps(data, ensure_ascii=False, indent=2))
            return

        lines = [text] if isinstance(text, str) else (text or [])
        for line in lines:
            click.echo(line)

    def error(self, message: str) -> None:
        if self.json_output:
            click.echo(json.dumps({"status": "error", "error": message}, ensure_ascii=False))
        else:
            click.echo(f"❌ {message}", err=True)


pass_cli_context = click.make_pass_decorator(CLIContext)


class ClickConfirmation:
    """``UserConfirmation`` backed by a terminal prompt (or ``--yes``)."""

    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            return True
        return click.confirm(message, default=False)


class FileExporter:
    """``Exporter`` writing into a file or directory."""

    def __init__(self, destination: Path) -> None:
        self.destination = destination
        self.written: Path | None = None

    def deliver(self, filename: str, content: str) -> None:
        path = self.destination / filename if self.destination.is_dir() else self.destination
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content + "\n", encoding="utf-8")
        self.written = path


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, BackupNotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(exc, (InvalidDeltaError, BackupError, ValueError)):
        return ExitCode.VALIDATION_ERROR
    if isinstance(exc, (PersistenceError, OSError)):
        return ExitCode.IO_ERROR
    return ExitCode.UNKNOWN_ERROR


def handle_cli_error(ctx: CLIContext, exc: Exception) -> int:
    """Report an error and return its exit code."""
    ctx.error(str(exc))
    if ctx.verbose and not ctx.json_output:
        click.echo("\nTraceback:", err=True)
        click.echo(traceback.format_exc(), err=True)
    return int(exit_code_for(exc))
