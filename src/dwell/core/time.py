"""Time utilities and bucket key derivation for Dwell.

Every hour, day and week bucket key in the system comes from this module.
Keys are derived from the local calendar of a configured timezone:

- day key:  ``YYYY-MM-DD``
- hour key: ``YYYY-MM-DD-HH``
- week key: ``YYYY-Www`` (ISO-8601 week-year and week number)

Day and hour keys share the same local conversion, so an hour key always
starts with the day key of the same instant.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

__all__ = [
    "Timestamp",
    "day_key",
    "ensure_timezone",
    "format_utc_iso8601",
    "get_current_utc",
    "hour_key",
    "iso_week_number",
    "parse_day_key",
    "parse_utc_iso8601",
    "resolve_timezone",
    "to_local",
    "week_key",
    "week_key_for_date",
]

Timestamp = datetime | int | float
"""Aware datetime, naive datetime (read as UTC) or epoch seconds."""


def resolve_timezone(tz: str | tzinfo | None = None) -> tzinfo:
    """Resolve a timezone name or object.

    Parameters
    ----------
    tz
        IANA timezone name, tzinfo instance, or None for UTC

    Returns
    -------
    tzinfo
        Timezone object

    Raises
    ------
    ValueError
        If the timezone name is unknown
    """
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    if tz.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone: {tz}") from exc


def get_current_utc() -> datetime:
    """Get current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_timezone(dt: datetime, tz: str | tzinfo | None = None) -> datetime:
    """Attach a timezone to a naive datetime (UTC unless given).

    Aware datetimes are returned unchanged.
    """
    if dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=resolve_timezone(tz))


def to_local(timestamp: Timestamp, tz: str | tzinfo | None = None) -> datetime:
    """Convert a timestamp to local time in ``tz``.

    Parameters
    ----------
    timestamp
        Aware datetime, naive datetime (treated as UTC) or epoch seconds
    tz
        Target timezone (default: UTC)

    Returns
    -------
    datetime
        Aware datetime in the target timezone

    Raises
    ------
    TypeError
        If the timestamp type is not supported
    """
    target = resolve_timezone(tz)

    # bool is an int subclass but never a timestamp
    if isinstance(timestamp, bool):
        raise TypeError("Timestamp must be a datetime or epoch seconds, got bool")

    if isinstance(timestamp, datetime):
        return ensure_timezone(timestamp).astimezone(target)

    if isinstance(timestamp, (int, float)):
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).astimezone(target)

    raise TypeError(f"Timestamp must be a datetime or epoch seconds, got {type(timestamp).__name__}")


def day_key(timestamp: Timestamp, tz: str | tzinfo | None = None) -> str:
    """Calendar date key ``YYYY-MM-DD`` in the local timezone.

    Example
    -------
    >>> day_key(datetime(2024, 1, 1, 14, 30, tzinfo=timezone.utc))
    '2024-01-01'
    """
    return to_local(timestamp, tz).strftime("%Y-%m-%d")


def hour_key(timestamp: Timestamp, tz: str | tzinfo | None = None) -> str:
    """Hour key ``YYYY-MM-DD-HH`` in the local timezone.

    Example
    -------
    >>> hour_key(datetime(2024, 1, 1, 14, 30, tzinfo=timezone.utc))
    '2024-01-01-14'
    """
    local = to_local(timestamp, tz)
    return f"{local:%Y-%m-%d}-{local.hour:02d}"


def iso_week_number(local_date: date) -> tuple[int, int]:
    """ISO-8601 week-year and week number of a calendar date.

    The date is shifted to the Thursday of its week (Monday=1 .. Sunday=7);
    that Thursday's year is the week-year and the week number counts
    seven-day blocks from January 1 of that year.

    Parameters
    ----------
    local_date
        Calendar date

    Returns
    -------
    tuple[int, int]
        (iso_year, week)

    Example
    -------
    >>> iso_week_number(date(2024, 12, 30))
    (2025, 1)
    >>> iso_week_number(date(2021, 1, 3))
    (2020, 53)
    """
    iso_weekday = local_date.isoweekday()
    thursday = local_date + timedelta(days=4 - iso_weekday)
    year_start = date(thursday.year, 1, 1)
    days_since_year_start = (thursday - year_start).days
    week = math.ceil((days_since_year_start + 1) / 7)
    return thursday.year, week


def week_key_for_date(local_date: date) -> str:
    """Week key ``YYYY-Www`` for a calendar date."""
    iso_year, week = iso_week_number(local_date)
    return f"{iso_year}-W{week:02d}"


def week_key(timestamp: Timestamp, tz: str | tzinfo | None = None) -> str:
    """ISO week key ``YYYY-Www`` in the local timezone.

    Example
    -------
    >>> week_key(datetime(2024, 12, 31, tzinfo=timezone.utc))
    '2025-W01'
    """
    return week_key_for_date(to_local(timestamp, tz).date())


def parse_day_key(key: str) -> date:
    """Parse a ``YYYY-MM-DD`` day key.

    Raises
    ------
    ValueError
        If the key is not a valid date
    """
    return datetime.strptime(key, "%Y-%m-%d").date()


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC string.

    Naive datetimes are read as UTC.

    Example
    -------
    >>> format_utc_iso8601(datetime(2025, 10, 8, 12, 30, tzinfo=timezone.utc))
    '2025-10-08T12:30:00+00:00'
    """
    return ensure_timezone(dt).astimezone(timezone.utc).isoformat()


def parse_utc_iso8601(value: str) -> datetime:
    """Parse ISO-8601 string (``Z`` suffix accepted) into an aware UTC datetime.

    Raises
    ------
    ValueError
        If parsing fails
    """
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ensure_timezone(dt).astimezone(timezone.utc)
