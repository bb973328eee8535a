"""Recent time windows over a domain record.

Zero-filled series ending at "now", oldest bucket first:

- last 24 hours (hour buckets)
- last 7 days (day buckets)
- last 4 weeks (ISO week buckets)

Keys come from the same derivation the store uses, so a series lines up
with the buckets ``apply`` wrote.
"""

from __future__ import annotations

from datetime import timedelta, tzinfo
from typing import Literal

from ..core.time import Timestamp, hour_key, to_local, week_key_for_date
from ..storage.records import DomainRecord

__all__ = [
    "Resolution",
    "recent_days",
    "recent_hours",
    "recent_series",
    "recent_weeks",
]

Resolution = Literal["hour", "day", "week"]


def recent_hours(
    record: DomainRecord,
    now: Timestamp,
    tz: str | tzinfo | None = None,
    count: int = 24,
) -> dict[str, int]:
    """Seconds per hour for the ``count`` hours ending at ``now``.

    Hours are stepped in absolute time, so a repeated local hour on a DST
    fall-back day appears once with its combined total.
    """
    utc_now = to_local(now)
    series: dict[str, int] = {}
    for offset in range(count - 1, -1, -1):
        key = hour_key(utc_now - timedelta(hours=offset), tz)
        series[key] = record.hourly.get(key, 0)
    return series


def recent_days(
    record: DomainRecord,
    now: Timestamp,
    tz: str | tzinfo | None = None,
    count: int = 7,
) -> dict[str, int]:
    """Seconds per local calendar day for the ``count`` days ending today."""
    today = to_local(now, tz).date()
    series: dict[str, int] = {}
    for offset in range(count - 1, -1, -1):
        key = (today - timedelta(days=offset)).strftime("%Y-%m-%d")
        series[key] = record.daily.get(key, 0)
    return series


def recent_weeks(
    record: DomainRecord,
    now: Timestamp,
    tz: str | tzinfo | None = None,
    count: int = 4,
) -> dict[str, int]:
    """Seconds per ISO week for the ``count`` weeks ending this week."""
    today = to_local(now, tz).date()
    series: dict[str, int] = {}
    for offset in range(count - 1, -1, -1):
        key = week_key_for_date(today - timedelta(weeks=offset))
        series[key] = record.weekly.get(key, 0)
    return series


def recent_series(
    record: DomainRecord,
    now: Timestamp,
    resolution: Resolution,
    tz: str | tzinfo | None = None,
    count: int | None = None,
) -> dict[str, int]:
    """Dispatch to the window function for ``resolution``.

    Default counts: 24 hours, 7 days, 4 weeks.
    """
    if resolution == "hour":
        return recent_hours(record, now, tz, count or 24)
    elif resolution == "day":
        return recent_days(record, now, tz, count or 7)
    elif resolution == "week":
        return recent_weeks(record, now, tz, count or 4)
    else:
        raise ValueError(f"Unknown resolution: {resolution}")
