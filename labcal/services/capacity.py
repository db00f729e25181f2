"""
Capacity Planning

Buckets each selected resource's events into time slots (hour, day, week or
month), then derives a heatmap, a utilization forecast and a bottleneck
ranking from the bucketed hours.

Maintenance and Broken hours count as downtime; everything else counts as
utilization.
"""
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from labcal.core.exceptions import InvalidInputError
from labcal.models.event import Event, Purpose
from labcal.models.tenant import Resource
from labcal.utils.dates import (
    end_of_day,
    end_of_month,
    isoformat_utc,
    overlap_hours,
    start_of_day,
    start_of_month,
    start_of_week,
)

TIME_UNITS = ("hour", "day", "week", "month")
DEFAULT_TIME_UNIT = "day"

# Nominal capacity of one slot; months are counted as 30 days
HOURS_PER_SLOT = {"hour": 1, "day": 24, "week": 168, "month": 720}

SLOT_STEPS = {
    "hour": relativedelta(hours=1),
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
}

DEFAULT_SELECTION_SIZE = 5
PROJECTED_GROWTH = 1.15
AT_RISK_RATE = 85
HIGH_SLOT_THRESHOLD = 0.8

# Guard against a range/unit combination that would produce an absurd grid
MAX_SLOTS = 2000

HEATMAP_COLORS = (
    (90, "#f5222d"),
    (75, "#fa8c16"),
    (50, "#faad14"),
    (25, "#52c41a"),
)
HEATMAP_EMPTY_COLOR = "#d9d9d9"


def heatmap_color(percent: float) -> str:
    for threshold, color in HEATMAP_COLORS:
        if percent >= threshold:
            return color
    return HEATMAP_EMPTY_COLOR


def forecast_status(projected_rate: float) -> str:
    if projected_rate > 95:
        return "Capacity Exceeded"
    if projected_rate > 85:
        return "At Risk"
    if projected_rate > 70:
        return "Optimal"
    return "Underutilized"


def risk_level(score: float) -> str:
    if score >= 85:
        return "critical"
    if score >= 70:
        return "high"
    if score >= 50:
        return "medium"
    return "low"


def slot_label(slot_start: datetime, unit: str) -> str:
    if unit == "hour":
        hour = slot_start.hour % 12 or 12
        return f"{slot_start:%m/%d/%Y} {hour} {'AM' if slot_start.hour < 12 else 'PM'}"
    if unit == "day":
        return f"{slot_start:%m/%d/%Y}"
    if unit == "week":
        return f"Week of {slot_start:%b} {slot_start.day}, {slot_start.year}"
    return f"{slot_start:%B %Y}"


def generate_slots(start: datetime, end: datetime, unit: str) -> List[Dict[str, Any]]:
    """
    Slots covering [start, end].

    Hour and day slots begin at the start of the start day, week slots on
    the Sunday of the start week, month slots on the first of the month.
    Slots are generated while their start is on or before the end of the
    end day.
    """
    if unit not in TIME_UNITS:
        raise InvalidInputError(f"Invalid unit: {unit}. Expected one of: {', '.join(TIME_UNITS)}")

    if unit == "week":
        current = start_of_week(start)
    elif unit == "month":
        current = start_of_month(start)
    else:
        current = start_of_day(start)

    limit = end_of_day(end)
    step = SLOT_STEPS[unit]
    slots = []
    while current <= limit:
        if len(slots) >= MAX_SLOTS:
            raise InvalidInputError(f"Range too large for unit {unit!r} (more than {MAX_SLOTS} slots)")
        slot_end = current + step
        slots.append({"start": current, "end": slot_end, "label": slot_label(current, unit)})
        current = slot_end
    return slots


def default_selection(resources: Sequence[Resource], events: Sequence[Event], size: int = DEFAULT_SELECTION_SIZE) -> List[str]:
    """The `size` resources with the most events (ties keep resource order)."""
    usage = Counter()
    for resource in resources:
        usage[resource.id] = sum(1 for e in events if e.belongs_to(resource.id, resource.title))
    ranked = sorted(resources, key=lambda r: usage[r.id], reverse=True)
    return [r.id for r in ranked[:size]]


def _empty_hours() -> Dict[str, float]:
    return {"utilization": 0.0, "maintenance": 0.0, "broken": 0.0}


def _purpose_key(purpose: Purpose) -> str:
    return {
        Purpose.MAINTENANCE: "maintenance",
        Purpose.BROKEN: "broken",
    }.get(purpose, "utilization")


def bucket_hours(resource: Resource, events: Sequence[Event], slots: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-slot hours by purpose for one resource, each event clipped to the slot."""
    own_events = [e for e in events if e.belongs_to(resource.id, resource.title)]
    buckets = []
    for slot in slots:
        hours = _empty_hours()
        slot_events = []
        for event in own_events:
            clipped = overlap_hours(event.start, event.end, slot["start"], slot["end"])
            if clipped <= 0:
                continue
            hours[_purpose_key(event.purpose)] += clipped
            slot_events.append({
                "id": event.id,
                "title": event.title,
                "purpose": event.purpose.value,
                "hours": round(clipped, 2),
            })
        buckets.append({"hours": hours, "total": sum(hours.values()), "events": slot_events})
    return buckets


def _percent(hours: float, capacity: float) -> int:
    return min(100, round(hours / capacity * 100)) if capacity else 0


def plan(
    resources: Sequence[Resource],
    events: Sequence[Event],
    now: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    unit: str = DEFAULT_TIME_UNIT,
    resource_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Capacity plan for the selected resources over [start, end].

    Defaults: the current calendar month, daily slots, and the five most
    used resources.
    """
    start = start or start_of_month(now)
    end = end or end_of_month(now)
    if end < start:
        raise InvalidInputError("End date must not be before start date")

    slots = generate_slots(start, end, unit)
    capacity_per_slot = HOURS_PER_SLOT[unit]

    if resource_ids:
        known = {r.id: r for r in resources}
        unknown = [rid for rid in resource_ids if rid not in known]
        if unknown:
            raise InvalidInputError(f"Unknown resources: {', '.join(unknown)}")
        selected = [known[rid] for rid in resource_ids]
    else:
        selection = default_selection(resources, events)
        selected = [r for rid in selection for r in resources if r.id == rid]

    window_start, window_end = start_of_day(start), end_of_day(end)
    in_window = [e for e in events if e.overlaps(window_start, window_end)]

    heatmap = []
    forecasts = []
    bottlenecks = []
    for resource in selected:
        buckets = bucket_hours(resource, in_window, slots)
        heatmap.append(_heatmap_row(resource, slots, buckets, capacity_per_slot))
        forecasts.append(_forecast_row(resource, buckets, capacity_per_slot))
        bottlenecks.append(_bottleneck_row(resource, buckets, capacity_per_slot))

    bottlenecks.sort(key=lambda row: row["bottleneckScore"], reverse=True)

    return {
        "start": isoformat_utc(window_start),
        "end": isoformat_utc(window_end),
        "unit": unit,
        "hoursPerSlot": capacity_per_slot,
        "slots": [
            {"start": isoformat_utc(s["start"]), "end": isoformat_utc(s["end"]), "label": s["label"]}
            for s in slots
        ],
        "selectedResources": [r.id for r in selected],
        "heatmap": heatmap,
        "forecast": {
            "resources": forecasts,
            "summary": _forecast_summary(forecasts),
        },
        "bottlenecks": bottlenecks,
    }


def _heatmap_row(resource: Resource, slots, buckets, capacity: float) -> Dict[str, Any]:
    cells = []
    for slot, bucket in zip(slots, buckets):
        total_percent = _percent(bucket["total"], capacity)
        cells.append({
            "label": slot["label"],
            "hours": {k: round(v, 2) for k, v in bucket["hours"].items()},
            "totalHours": round(bucket["total"], 2),
            "percentages": {k: _percent(v, capacity) for k, v in bucket["hours"].items()},
            "totalPercent": total_percent,
            "color": heatmap_color(total_percent),
            "events": bucket["events"],
        })
    return {"resourceId": resource.id, "name": resource.title, "cells": cells}


def _forecast_row(resource: Resource, buckets, capacity: float) -> Dict[str, Any]:
    current = sum(b["total"] for b in buckets)
    utilization_hours = sum(b["hours"]["utilization"] for b in buckets)
    projected = current * PROJECTED_GROWTH
    available = len(buckets) * capacity
    projected_rate = min(100, round(projected / available * 100)) if available else 0
    return {
        "resourceId": resource.id,
        "name": resource.title,
        "currentHours": round(current, 2),
        "projectedHours": round(projected, 2),
        "availableHours": available,
        "utilizationRate": round(utilization_hours / available * 100) if available else 0,
        "projectedRate": projected_rate,
        "status": forecast_status(projected_rate),
        "additionalCapacityNeeded": round(max(0.0, projected - available * AT_RISK_RATE / 100), 2),
    }


def _forecast_summary(forecasts: List[Dict[str, Any]]) -> Dict[str, Any]:
    count = len(forecasts)
    return {
        "averageUtilization": round(sum(f["utilizationRate"] for f in forecasts) / count) if count else 0,
        "resourcesAtRisk": sum(1 for f in forecasts if f["projectedRate"] > AT_RISK_RATE),
        "additionalCapacityNeeded": round(sum(f["additionalCapacityNeeded"] for f in forecasts), 2),
    }


def _bottleneck_row(resource: Resource, buckets, capacity: float) -> Dict[str, Any]:
    hours = _empty_hours()
    for bucket in buckets:
        for key, value in bucket["hours"].items():
            hours[key] += value
    capacity_hours = len(buckets) * capacity
    downtime = hours["maintenance"] + hours["broken"]
    high_slots = sum(1 for b in buckets if b["total"] > capacity * HIGH_SLOT_THRESHOLD)
    peak = max((_percent(b["total"], capacity) for b in buckets), default=0)

    score = 0
    if capacity_hours and buckets:
        score = round(hours["utilization"] / capacity_hours * 70 + high_slots / len(buckets) * 30)

    return {
        "resourceId": resource.id,
        "name": resource.title,
        "hours": {k: round(v, 2) for k, v in hours.items()},
        "capacityHours": capacity_hours,
        "utilizationPercent": round(hours["utilization"] / capacity_hours * 100, 1) if capacity_hours else 0,
        "downtimePercent": round(downtime / capacity_hours * 100, 1) if capacity_hours else 0,
        "peakUtilization": peak,
        "highUtilizationSlots": high_slots,
        "bottleneckScore": score,
        "riskLevel": risk_level(score),
    }
