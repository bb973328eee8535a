"""Centralized configuration for Dwell.

Settings are layered (highest priority first):

1. Environment variables (``DWELL_*``), optionally loaded from a ``.env`` file
2. YAML config file (``dwell.yaml`` by default)
3. Dataclass defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from ..core.time import resolve_timezone

__all__ = [
    "ConfigError",
    "Settings",
    "get_settings",
    "load_env_file",
    "load_settings",
]

ENV_PREFIX = "DWELL_"


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Dwell settings.

    Attributes
    ----------
    data_dir : Path
        Directory holding the store and its backups
    store_key : str
        Storage key of the store; backups use ``<store_key>_backup_<ms>``
    timezone : str
        IANA timezone whose local calendar defines bucket keys
    idle_threshold_ms : int
        Inactivity after which ticks stop counting
    tick_seconds : int
        Seconds credited per active tick (and tick interval)
    backup_retention : int
        Number of backups kept
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL logs (console only when unset)
    """

    data_dir: Path = Path("dwell-data")
    store_key: str = "websiteTimeTracker"
    timezone: str = "UTC"
    idle_threshold_ms: int = 30_000
    tick_seconds: int = 1
    backup_retention: int = 5
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Normalize and validate settings."""
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        if not self.store_key or not self.store_key.replace("_", "").replace("-", "").replace(".", "").isalnum():
            raise ConfigError(
                f"DWELL_STORE_KEY must contain only letters, digits, '.', '_' or '-', got: {self.store_key!r}"
            )

        try:
            resolve_timezone(self.timezone)
        except ValueError as exc:
            raise ConfigError(f"DWELL_TIMEZONE is not a known timezone: {self.timezone!r}") from exc

        if self.idle_threshold_ms <= 0:
            raise ConfigError(f"DWELL_IDLE_THRESHOLD_MS must be positive, got: {self.idle_threshold_ms}")
        if self.tick_seconds <= 0:
            raise ConfigError(f"DWELL_TICK_SECONDS must be positive, got: {self.tick_seconds}")
        if self.backup_retention < 1:
            raise ConfigError(f"DWELL_BACKUP_RETENTION must be at least 1, got: {self.backup_retention}")

        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(
        cls,
        env_file: Path | str | None = None,
        config_file: Path | str | None = None,
    ) -> Settings:
        """Load settings from YAML, ``.env`` and the environment.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)
        config_file
            Path to YAML config (default: dwell.yaml in current directory)

        Returns
        -------
        Settings
            Loaded settings

        Raises
        ------
        ConfigError
            If a value is missing or invalid
        """
        env_path = Path(env_file) if env_file is not None else Path(".env")
        if env_path.exists():
            load_env_file(env_path)

        config_path = Path(config_file) if config_file is not None else Path("dwell.yaml")
        values = load_yaml_config(config_path) if config_path.exists() else {}

        env_overrides = {
            "data_dir": os.environ.get("DWELL_DATA_DIR"),
            "store_key": os.environ.get("DWELL_STORE_KEY"),
            "timezone": os.environ.get("DWELL_TIMEZONE"),
            "idle_threshold_ms": os.environ.get("DWELL_IDLE_THRESHOLD_MS"),
            "tick_seconds": os.environ.get("DWELL_TICK_SECONDS"),
            "backup_retention": os.environ.get("DWELL_BACKUP_RETENTION"),
            "log_level": os.environ.get("DWELL_LOG_LEVEL"),
            "log_dir": os.environ.get("DWELL_LOG_DIR"),
        }
        values.update({key: value for key, value in env_overrides.items() if value is not None})

        try:
            return cls(
                data_dir=Path(values.get("data_dir", cls.data_dir)),
                store_key=str(values.get("store_key", cls.store_key)),
                timezone=str(values.get("timezone", cls.timezone)),
                idle_threshold_ms=int(values.get("idle_threshold_ms", cls.idle_threshold_ms)),
                tick_seconds=int(values.get("tick_seconds", cls.tick_seconds)),
                backup_retention=int(values.get("backup_retention", cls.backup_retention)),
                log_level=str(values.get("log_level", cls.log_level)),
                log_dir=Path(values["log_dir"]) if values.get("log_dir") else None,
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """Settings as plain values (paths as strings)."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result


def load_yaml_config(config_file: Path) -> dict[str, Any]:
    """Read the ``dwell`` section (or top level) of a YAML config file.

    Raises
    ------
    ConfigError
        If the file is not valid YAML or not a mapping
    """
    try:
        with open(config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")

    section = data.get("dwell", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'dwell' section in {config_file} must be a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {config_file}: {', '.join(unknown)}")

    return dict(section)


def load_env_file(env_file: Path) -> None:
    """Export ``KEY=value`` lines of a .env file into ``os.environ``.

    Variables already set in the environment keep their value.
    """
    for raw in Path(env_file).read_text(encoding="utf-8").splitlines():
        entry = raw.strip()
        if entry.startswith("#"):
            continue
        name, sep, value = entry.partition("=")
        if not sep:
            continue

        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        os.environ.setdefault(name.strip(), value)


_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None, config_file: Path | str | None = None) -> Settings:
    """Load settings and keep them as the process-wide instance."""
    global _settings
    _settings = Settings.from_env(env_file, config_file)
    return _settings


def get_settings() -> Settings:
    """Current settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
