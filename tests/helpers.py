"""Shared time helpers for tests."""
from datetime import datetime, timezone

# Wednesday; the surrounding week starts on Sunday 2024-03-10
NOW = datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


def at(day: int, hour: float = 0, month: int = 3, year: int = 2024) -> datetime:
    """UTC datetime helper: at(13, 9.5) -> 2024-03-13 09:30Z."""
    minutes = int(round(hour * 60))
    return datetime(year, month, day, minutes // 60, minutes % 60, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.000Z")
