"""Dwell: per-domain active time tracking with hour, day and ISO-week rollups."""

__version__ = "0.1.0"
