"""
Schedule Views

Resource dashboard, equipment list and technician schedule. Each is a
pure function of (resources, events, now).
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from labcal.core.exceptions import InvalidInputError
from labcal.models.event import Event
from labcal.models.tenant import Resource
from labcal.utils.dates import isoformat_utc, start_of_week

STATUS_IN_USE = "in-use"
STATUS_AVAILABLE = "available"
STATUS_FILTERS = ("all", STATUS_AVAILABLE, STATUS_IN_USE)
SORT_KEYS = ("name", "status", "reservations")

WORKDAYS_PER_WEEK = 5

DEFAULT_TECHNICIANS = ["Dr. Smith", "Dr. Johnson", "Lab Tech Sarah"]


def _resource_events(resource: Resource, events: Sequence[Event]) -> List[Event]:
    return [e for e in events if e.belongs_to(resource.id, resource.title)]


def resource_status(resource_events: Sequence[Event], now: datetime) -> str:
    return STATUS_IN_USE if any(e.covers(now) for e in resource_events) else STATUS_AVAILABLE


def serialize_event(event: Event) -> Dict[str, Any]:
    """Event as JSON with canonical timestamps (extra stored fields included)."""
    data = event.model_dump(by_alias=True, exclude_none=True, mode="json")
    data["start"] = isoformat_utc(event.start)
    data["end"] = isoformat_utc(event.end)
    return data


def resource_dashboard(resources: Sequence[Resource], events: Sequence[Event], now: datetime) -> List[Dict[str, Any]]:
    """
    One card per resource.

    utilization is this week's bookings against five working days, so a
    resource booked every weekday reads 100%.
    """
    week_start = start_of_week(now)
    week_end = week_start + timedelta(days=7)

    cards = []
    for resource in resources:
        own = _resource_events(resource, events)
        this_week = sum(1 for e in own if week_start <= e.start < week_end)
        cards.append({
            "resourceId": resource.id,
            "name": resource.title,
            "location": resource.location,
            "status": resource_status(own, now),
            "totalEvents": len(own),
            "thisWeekEvents": this_week,
            "utilization": round(this_week / WORKDAYS_PER_WEEK * 100) if own else 0,
        })
    return cards


def equipment_list(
    resources: Sequence[Resource],
    events: Sequence[Event],
    now: datetime,
    status: str = "all",
    sort: str = "name",
) -> List[Dict[str, Any]]:
    """Status, next reservation and reservation count per resource, filtered and sorted."""
    if status not in STATUS_FILTERS:
        raise InvalidInputError(f"Invalid status filter: {status}")
    if sort not in SORT_KEYS:
        raise InvalidInputError(f"Invalid sort key: {sort}")

    rows = []
    for resource in resources:
        own = _resource_events(resource, events)
        upcoming = sorted((e for e in own if e.start > now), key=lambda e: e.start)
        next_event: Optional[Event] = upcoming[0] if upcoming else None
        rows.append({
            "resourceId": resource.id,
            "name": resource.title,
            "location": resource.location,
            "status": resource_status(own, now),
            "reservations": len(own),
            "nextReservation": {
                "id": next_event.id,
                "title": next_event.title,
                "start": isoformat_utc(next_event.start),
                "end": isoformat_utc(next_event.end),
            } if next_event else None,
        })

    if status != "all":
        rows = [row for row in rows if row["status"] == status]

    if sort == "reservations":
        rows.sort(key=lambda row: row["reservations"], reverse=True)
    else:
        rows.sort(key=lambda row: str(row[sort]).lower())
    return rows


def technician_schedule(events: Sequence[Event], technician: str = "all") -> Dict[str, Any]:
    """
    Technicians (first-seen order) and the selected technician's events by start.

    "all" selects every event that names a technician.
    """
    technicians: List[str] = []
    for event in events:
        if event.technician and event.technician not in technicians:
            technicians.append(event.technician)

    if technician == "all":
        selected = [e for e in events if e.technician]
    else:
        selected = [e for e in events if e.technician == technician]
    selected.sort(key=lambda e: e.start)

    return {
        "technicians": technicians or list(DEFAULT_TECHNICIANS),
        "selected": technician,
        "events": [serialize_event(e) for e in selected],
    }
