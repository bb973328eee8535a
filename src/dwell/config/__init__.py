"""Configuration for Dwell."""

from .settings import ConfigError, Settings, get_settings, load_settings

__all__ = [
    "ConfigError",
    "Settings",
    "get_settings",
    "load_settings",
]
