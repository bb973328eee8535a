"""Export of the store as a JSON payload or a CSV table.

JSON payload::

    {
        "version": "1.0",
        "exportDate": "2024-01-01T12:00:00+00:00",
        "data": {...store...},
        "totalSites": 2,
        "totalTime": 7200
    }

CSV: one row per (domain, day) with the day's ISO-week total, then one row
per (domain, hour) carrying the hour's seconds in the daily column.
"""

from __future__ import annotations

import copy
import csv
import io
import json
from datetime import datetime
from typing import Any

from ..core.time import format_utc_iso8601, parse_day_key, week_key_for_date
from ..storage.records import StoreData

__all__ = [
    "CSV_HEADER",
    "EXPORT_VERSION",
    "build_export_payload",
    "export_csv",
    "export_filename",
    "export_json",
]

EXPORT_VERSION = "1.0"

CSV_HEADER = (
    "Domain",
    "Date",
    "Hour",
    "Daily Time (seconds)",
    "Weekly Time (seconds)",
    "Total Time (seconds)",
)


def build_export_payload(data: StoreData, export_date: datetime) -> dict[str, Any]:
    """Self-describing export payload for a store snapshot."""
    return {
        "version": EXPORT_VERSION,
        "exportDate": format_utc_iso8601(export_date),
        "data": copy.deepcopy(data),
        "totalSites": len(data),
        "totalTime": sum(int(record.get("totalTime", 0)) for record in data.values()),
    }


def export_json(data: StoreData, export_date: datetime, *, indent: int | None = 2) -> str:
    """Serialize the export payload as JSON text."""
    return json.dumps(build_export_payload(data, export_date), indent=indent, ensure_ascii=False)


def _week_total_for_day(record: dict[str, Any], day: str) -> int | str:
    try:
        week = week_key_for_date(parse_day_key(day))
    except ValueError:
        return ""
    return (record.get("weeklyData") or {}).get(week, 0)


def _split_hour_key(hour: str) -> tuple[str, str]:
    date_part, _, hour_part = hour.rpartition("-")
    return date_part, hour_part


def export_csv(data: StoreData) -> str:
    """Flatten the store into CSV text.

    Example
    -------
    >>> print(export_csv({"a.com": {"totalTime": 5, "dailyData": {"2024-01-01": 5},
    ...     "weeklyData": {"2024-W01": 5}, "hourlyData": {"2024-01-01-12": 5}}}))
    Domain,Date,Hour,Daily Time (seconds),Weekly Time (seconds),Total Time (seconds)
    a.com,2024-01-01,,5,5,5
    a.com,2024-01-01,12,5,,5
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for domain, record in data.items():
        total = record.get("totalTime", 0)

        for day, seconds in (record.get("dailyData") or {}).items():
            writer.writerow([domain, day, "", seconds, _week_total_for_day(record, day), total])

        for hour, seconds in (record.get("hourlyData") or {}).items():
            date_part, hour_part = _split_hour_key(hour)
            writer.writerow([domain, date_part, hour_part, seconds, "", total])

    return buffer.getvalue().rstrip("\n")


def export_filename(export_date: datetime, extension: str) -> str:
    """Suggested file name, e.g. ``website-time-tracker-2024-01-01.json``."""
    return f"website-time-tracker-{export_date:%Y-%m-%d}.{extension}"
