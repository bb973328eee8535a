"""Command-line interface for Dwell."""
