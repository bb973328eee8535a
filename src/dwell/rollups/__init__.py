"""Rollups: store merging, recent windows and summaries."""

from .merge import merge_buckets, merge_records, merge_stores
from .summary import SiteTotal, StoreSummary, format_duration, summarize_store
from .windows import Resolution, recent_days, recent_hours, recent_series, recent_weeks

__all__ = [
    # Merge
    "merge_buckets",
    "merge_records",
    "merge_stores",
    # Windows
    "Resolution",
    "recent_days",
    "recent_hours",
    "recent_series",
    "recent_weeks",
    # Summaries
    "SiteTotal",
    "StoreSummary",
    "format_duration",
    "summarize_store",
]
