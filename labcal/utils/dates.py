"""
Date Helpers

Every timestamp the service stores or computes with is a timezone-aware UTC
datetime. Incoming values are parsed leniently (ISO strings, free-form date
strings, epoch milliseconds); naive values are taken to be UTC.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime:
    """
    Parse a timestamp into an aware UTC datetime.

    Raises ValueError when the value cannot be interpreted as a date.
    Numbers are read as milliseconds since the epoch.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"Not a timestamp: {value!r}")
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            # Outside the range the platform clock can represent
            raise ValueError(f"Not a timestamp: {value!r}") from e
    elif isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.parse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Not a timestamp: {value!r}") from e
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def try_parse_datetime(value: Any) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError:
        return None


def isoformat_utc(value: datetime) -> str:
    """Format as 2024-03-01T09:30:00.000Z (millisecond precision, Z suffix)."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def normalize_timestamp(value: Any) -> Any:
    """Return the canonical ISO form of a parseable timestamp, else the value unchanged."""
    parsed = try_parse_datetime(value)
    return isoformat_utc(parsed) if parsed else value


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def start_of_week(value: datetime) -> datetime:
    """Weeks start on Sunday."""
    # weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (value.weekday() + 1) % 7
    return start_of_day(value) - timedelta(days=days_since_sunday)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def end_of_month(value: datetime) -> datetime:
    return end_of_day(start_of_month(value) + relativedelta(months=1) - timedelta(days=1))


def add_months(value: datetime, months: int) -> datetime:
    return value + relativedelta(months=months)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def overlap_hours(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> float:
    """Hours of [start, end) that fall inside [window_start, window_end)."""
    clipped_start = max(start, window_start)
    clipped_end = min(end, window_end)
    if clipped_end <= clipped_start:
        return 0.0
    return hours_between(clipped_start, clipped_end)
