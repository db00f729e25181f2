"""
Gantt Chart

Lays out each resource's events as bars across a week, two-week or month
window. Geometry is in percent of the window width so any renderer can
scale it.
"""
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from labcal.core.exceptions import InvalidInputError
from labcal.models.event import Event
from labcal.models.tenant import Resource
from labcal.utils.dates import add_months, hours_between, isoformat_utc, start_of_day, start_of_week

VIEW_RANGES = ("week", "2week", "month")
DEFAULT_VIEW_RANGE = "week"

# Shortest bar drawn, as a fraction of one day column
MIN_BAR_FRACTION = 0.25


def validate_range(view_range: str) -> None:
    if view_range not in VIEW_RANGES:
        raise InvalidInputError(f"Invalid range: {view_range}. Expected one of: {', '.join(VIEW_RANGES)}")


def window_end(start: datetime, view_range: str) -> datetime:
    return shift_window(start, view_range, 1)


def shift_window(start: datetime, view_range: str, steps: int) -> datetime:
    """Move a window start forward (steps > 0) or backward by whole windows."""
    validate_range(view_range)
    if view_range == "month":
        return add_months(start, steps)
    days = 7 if view_range == "week" else 14
    return start + timedelta(days=days * steps)


def bar_geometry(event: Event, start: datetime, day_count: int) -> Dict[str, float]:
    """Left offset and width in percent; bars snap to their start day and are clamped to the window."""
    day_width = 100 / day_count
    days_from_start = hours_between(start, event.start) / 24
    left = math.floor(days_from_start) * day_width
    width = max(event.duration_hours / 24 * day_width, day_width * MIN_BAR_FRACTION)

    # Clamp to the window: events that began earlier start at 0,
    # events that run past the end stop at 100
    if left < 0:
        width += left
        left = 0.0
    width = max(min(width, 100 - left), 0.0)
    return {"left": round(left, 4), "width": round(width, 4)}


def build_chart(
    resources: Sequence[Resource],
    events: Sequence[Event],
    now: datetime,
    start: Optional[datetime] = None,
    view_range: str = DEFAULT_VIEW_RANGE,
) -> Dict[str, Any]:
    start = start_of_day(start) if start else start_of_week(now)
    end = window_end(start, view_range)
    day_count = round(hours_between(start, end) / 24)
    days = [start + timedelta(days=i) for i in range(day_count)]

    rows: List[Dict[str, Any]] = []
    for resource in resources:
        bars = []
        for event in events:
            if not event.belongs_to(resource.id, resource.title):
                continue
            if event.end < start or event.start > end:
                continue
            bars.append({
                "id": event.id,
                "title": event.title,
                "start": isoformat_utc(event.start),
                "end": isoformat_utc(event.end),
                "purpose": event.purpose.value,
                "technician": event.technician,
                **bar_geometry(event, start, day_count),
            })
        bars.sort(key=lambda bar: bar["start"])
        rows.append({"resourceId": resource.id, "name": resource.title, "events": bars})

    return {
        "range": view_range,
        "start": isoformat_utc(start),
        "end": isoformat_utc(end),
        "days": [{"date": d.strftime("%Y-%m-%d"), "label": d.strftime("%a %d")} for d in days],
        "previousStart": isoformat_utc(shift_window(start, view_range, -1)),
        "nextStart": isoformat_utc(shift_window(start, view_range, 1)),
        "resources": rows,
    }
