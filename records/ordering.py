"""Newest-first ordering of records by creation timestamp."""

import math
from datetime import date, datetime, timezone
from typing import Any, Iterable, List

from dateutil import parser as date_parser

from .record import VehicleRecord

# Numbers at or above this are epoch milliseconds (year 5138 in seconds)
MILLISECONDS_THRESHOLD = 1e11


def timestamp_value(ts: Any) -> float:
    """
    Convert a stored timestamp to epoch seconds.

    Accepts datetimes (naive ones are taken as UTC), ISO strings, plain
    numbers (seconds, or milliseconds when large) and {"seconds": ...}
    mappings. Anything missing or unreadable sorts as the epoch.
    """
    if ts is None or ts == "":
        return 0.0
    if isinstance(ts, bool):
        return 0.0
    if isinstance(ts, (int, float)):
        value = float(ts)
        if not math.isfinite(value):
            return 0.0
        if abs(value) >= MILLISECONDS_THRESHOLD:
            value /= 1000.0
        return value
    if isinstance(ts, dict):
        seconds = ts.get("seconds", ts.get("_seconds"))
        nanos = ts.get("nanoseconds", ts.get("_nanoseconds")) or 0
        if isinstance(seconds, (int, float)) and isinstance(nanos, (int, float)):
            return float(seconds) + nanos / 1e9
        return 0.0
    if isinstance(ts, str):
        try:
            ts = date_parser.isoparse(ts)
        except (ValueError, OverflowError):
            return 0.0
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.timestamp()
    if isinstance(ts, date):
        return datetime(ts.year, ts.month, ts.day, tzinfo=timezone.utc).timestamp()
    return 0.0


def sort_records(records: Iterable[VehicleRecord]) -> List[VehicleRecord]:
    """Sort newest first; equal timestamps keep their incoming order."""
    return sorted(records, key=lambda r: timestamp_value(r.timestamp), reverse=True)
