"""
Utilization Analytics

Pure derivations over a tenant's resources and events. Nothing is cached:
every call recomputes from the raw arrays.
"""
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from labcal.core.exceptions import InvalidInputError
from labcal.models.event import Event, Purpose
from labcal.models.tenant import Resource
from labcal.utils.dates import (
    add_months,
    hours_between,
    isoformat_utc,
    overlap_hours,
    start_of_month,
)

# range key -> (days used for rates, months back or None)
TIME_RANGES = {
    "7days": (7, None),
    "30days": (30, None),
    "90days": (90, None),
    "12months": (365, 12),
}
DEFAULT_TIME_RANGE = "30days"

TOP_TECHNICIANS = 5
TREND_MONTHS = 6


def range_start(now: datetime, time_range: str) -> datetime:
    if time_range not in TIME_RANGES:
        raise InvalidInputError(
            f"Invalid range: {time_range}. Expected one of: {', '.join(TIME_RANGES)}"
        )
    days, months = TIME_RANGES[time_range]
    if months:
        return add_months(now, -months)
    return now - timedelta(days=days)


def summarize(
    resources: Sequence[Resource],
    events: Sequence[Event],
    now: datetime,
    time_range: str = DEFAULT_TIME_RANGE,
) -> Dict[str, Any]:
    """
    Analytics summary for a time range ending now.

    Counts events that started inside [range start, now]. Monthly trends
    cover the last six calendar months regardless of range.
    """
    start = range_start(now, time_range)
    days = TIME_RANGES[time_range][0]
    in_range = [e for e in events if start <= e.start <= now]
    total = len(in_range)

    equipment = []
    for resource in resources:
        count = sum(1 for e in in_range if e.belongs_to(resource.id, resource.title))
        equipment.append({
            "resourceId": resource.id,
            "name": resource.title,
            "count": count,
            "utilization": round(count / total * 100) if total else 0,
        })
    equipment.sort(key=lambda row: row["count"], reverse=True)

    technician_counts = Counter(e.technician for e in in_range if e.technician)
    technicians = [
        {"name": name, "count": count}
        for name, count in technician_counts.most_common(TOP_TECHNICIANS)
    ]

    capacity_slots = len(resources) * days
    return {
        "range": time_range,
        "rangeStart": isoformat_utc(start),
        "rangeEnd": isoformat_utc(now),
        "metrics": {
            "totalEvents": total,
            "eventsPerDay": round(total / days, 1),
            "utilizationRate": round(total / capacity_slots * 100) if capacity_slots else 0,
            "activeEquipment": sum(1 for row in equipment if row["count"] > 0),
            "totalEquipment": len(resources),
        },
        "equipmentUtilization": equipment,
        "topTechnicians": technicians,
        "monthlyTrends": monthly_trends(events, now),
    }


def monthly_trends(events: Sequence[Event], now: datetime, months: int = TREND_MONTHS) -> List[Dict[str, Any]]:
    """Event counts for each of the last `months` calendar months, oldest first."""
    current = start_of_month(now)
    trends = []
    for offset in range(months - 1, -1, -1):
        month_start = add_months(current, -offset)
        month_end = add_months(month_start, 1)
        trends.append({
            "month": month_start.strftime("%b %Y"),
            "count": sum(1 for e in events if month_start <= e.start < month_end),
        })
    return trends


def utilization_breakdown(
    resources: Sequence[Resource],
    events: Sequence[Event],
    period_start: datetime,
    period_end: datetime,
) -> Dict[str, Any]:
    """
    Purpose breakdown, costs and ROI per resource over [period_start, period_end).

    Hours are clipped to the period, and an event that straddles a period
    boundary contributes the same fraction of its cost as of its hours.
    For non-overlapping events the four percentages (utilization,
    maintenance, broken, idle) sum to 100.
    """
    if period_end <= period_start:
        raise InvalidInputError("Period end must be after period start")
    period_hours = hours_between(period_start, period_end)

    rows = []
    for resource in resources:
        hours = {purpose: 0.0 for purpose in Purpose}
        costs = {purpose: 0.0 for purpose in Purpose}
        for event in events:
            if not event.belongs_to(resource.id, resource.title):
                continue
            clipped = overlap_hours(event.start, event.end, period_start, period_end)
            if clipped <= 0:
                continue
            hours[event.purpose] += clipped
            costs[event.purpose] += event.cost * clipped / event.duration_hours
        rows.append(_breakdown_row(resource, hours, costs, period_hours))

    return {
        "periodStart": isoformat_utc(period_start),
        "periodEnd": isoformat_utc(period_end),
        "periodHours": round(period_hours, 2),
        "resources": rows,
    }


def _breakdown_row(resource: Resource, hours: Dict[Purpose, float], costs: Dict[Purpose, float], period_hours: float) -> Dict[str, Any]:
    utilization = hours[Purpose.UTILIZATION] / period_hours * 100
    maintenance = hours[Purpose.MAINTENANCE] / period_hours * 100
    broken = hours[Purpose.BROKEN] / period_hours * 100

    utilization_cost = costs[Purpose.UTILIZATION]
    downtime_cost = costs[Purpose.MAINTENANCE] + costs[Purpose.BROKEN]
    roi: Optional[float] = None
    if downtime_cost > 0:
        roi = round((utilization_cost - downtime_cost) / downtime_cost * 100, 1)

    utilization_hours = hours[Purpose.UTILIZATION]
    return {
        "resourceId": resource.id,
        "name": resource.title,
        "hours": {
            "utilization": round(utilization_hours, 2),
            "maintenance": round(hours[Purpose.MAINTENANCE], 2),
            "broken": round(hours[Purpose.BROKEN], 2),
        },
        "percentages": {
            "utilization": round(utilization, 1),
            "maintenance": round(maintenance, 1),
            "broken": round(broken, 1),
            "idle": round(max(0.0, 100 - utilization - maintenance - broken), 1),
        },
        "costs": {
            "utilization": round(utilization_cost, 2),
            "maintenance": round(costs[Purpose.MAINTENANCE], 2),
            "broken": round(costs[Purpose.BROKEN], 2),
            "downtime": round(downtime_cost, 2),
            "total": round(utilization_cost + downtime_cost, 2),
        },
        "roi": roi,
        "costPerUtilizationHour": round(utilization_cost / utilization_hours, 2) if utilization_hours else None,
    }
