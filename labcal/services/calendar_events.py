"""
Calendar Event Operations

All event mutations run against a live tenant record inside a store
transaction. Raising any exception rolls the whole change back.

ER NUMBERS: A title starting with "ER<digits>" (any case) carries an
external request number. Posting a second event with the same ER number
updates the first instead of adding a duplicate.

The POST /api/calendar-events endpoint accepts three payload shapes,
checked in this order:
1. Hybrid:   {title, tenantId, start, end, ...}  (upsert by ER number)
2. Legacy:   {calendarId, summary, StartUse, EndUse, ...}
3. Standard: {tenantId, action, eventData}
"""
import re
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from labcal.core.exceptions import (
    EventNotFoundError,
    InvalidInputError,
    InvalidRequestFormatError,
)
from labcal.utils.dates import end_of_day, normalize_timestamp, try_parse_datetime
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

ER_NUMBER_PATTERN = re.compile(r"^(ER\d+)", re.IGNORECASE)

ACTIONS = ("create", "update", "delete")

EXPECTED_FORMATS = [
    "Standard API format: {tenantId, action, eventData}",
    "Hybrid format: {title, tenantId, start, end}",
    "Legacy format: {calendarId, summary, StartUse, EndUse}",
]

LEGACY_DEFAULT_TENANT = "default-tenant"
LEGACY_DEFAULT_RESOURCE = "equipment-1"

# Fields copied from a hybrid/legacy payload onto the stored event
PASSTHROUGH_FIELDS = (
    "location",
    "equipment",
    "technician",
    "purpose",
    "cost",
    "recordId",
    "sampleType",
    "reminders",
)

EventRecord = Dict[str, Any]
TenantRecord = Dict[str, Any]


# ============================================================================
# HELPERS
# ============================================================================

def extract_er_number(title: Any) -> Optional[str]:
    """Return the upper-cased ER number a title starts with, if any."""
    if not isinstance(title, str):
        return None
    match = ER_NUMBER_PATTERN.match(title.strip())
    return match.group(1).upper() if match else None


def same_id(left: Any, right: Any) -> bool:
    # Ids arrive as strings or numbers depending on the client
    return left is not None and right is not None and str(left) == str(right)


def find_event_index(events: List[EventRecord], event_id: Any) -> Optional[int]:
    for index, event in enumerate(events):
        if same_id(event.get("id"), event_id):
            return index
    return None


def find_event_by_er_number(events: List[EventRecord], title: Any) -> Optional[int]:
    """Index of the first event whose title carries the same ER number as title."""
    er_number = extract_er_number(title)
    if er_number is None:
        return None
    for index, event in enumerate(events):
        if extract_er_number(event.get("title")) == er_number:
            return index
    return None


def generate_event_id(events: List[EventRecord]) -> str:
    """Millisecond timestamp, bumped until it is unused in this tenant."""
    taken = {str(e.get("id")) for e in events}
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def normalize_dates(event_data: EventRecord) -> EventRecord:
    """Rewrite parseable start/end values as ISO-8601 UTC; leave others as given."""
    for field in ("start", "end"):
        if event_data.get(field) not in (None, ""):
            event_data[field] = normalize_timestamp(event_data[field])
    return event_data


def resolve_resource_id(tenant: TenantRecord, equipment: Any) -> Optional[str]:
    """Map an equipment name to the id of the tenant resource with that title."""
    if not equipment:
        return None
    for resource in tenant.get("resources", []):
        if resource.get("title") == equipment:
            return resource.get("id")
    return None


def _replace_or_append(events: List[EventRecord], index: Optional[int], event: EventRecord) -> bool:
    """Replace events[index] or append; returns True when it replaced."""
    if index is None:
        events.append(event)
        return False
    events[index] = event
    return True


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidInputError(f"{name} must be an object")
    return value


# ============================================================================
# PAYLOAD FORMATS
# ============================================================================

def detect_format(payload: Dict[str, Any]) -> str:
    """
    Classify a POST /api/calendar-events body.

    Returns "hybrid", "legacy" or "standard"; raises InvalidRequestFormatError
    for anything else.
    """
    if all(payload.get(k) for k in ("title", "tenantId", "start", "end")):
        return "hybrid"
    if payload.get("calendarId") and payload.get("summary"):
        return "legacy"
    if all(payload.get(k) for k in ("tenantId", "action", "eventData")):
        return "standard"
    raise InvalidRequestFormatError(EXPECTED_FORMATS)


def build_hybrid_event(tenant: TenantRecord, payload: Dict[str, Any]) -> EventRecord:
    event = {
        "title": payload["title"],
        "start": payload["start"],
        "end": payload["end"],
        "allDay": bool(payload.get("allDay", False)),
    }
    for field in PASSTHROUGH_FIELDS + ("notes", "resourceId"):
        if payload.get(field) is not None:
            event[field] = payload[field]

    resource_id = resolve_resource_id(tenant, payload.get("equipment"))
    if resource_id:
        event["resourceId"] = resource_id
    elif payload.get("equipment"):
        logger.debug(f"No resource titled {payload['equipment']!r} in tenant {tenant['id']}")
    return normalize_dates(event)


def build_legacy_event(payload: Dict[str, Any]) -> EventRecord:
    event = {
        "title": payload["summary"],
        "start": payload.get("StartUse"),
        "end": payload.get("EndUse"),
        "allDay": bool(payload.get("allDay", False)),
        "resourceId": payload.get("resourceId") or LEGACY_DEFAULT_RESOURCE,
    }
    if payload.get("description") is not None:
        event["notes"] = payload["description"]
    for field in PASSTHROUGH_FIELDS:
        if payload.get(field) is not None:
            event[field] = payload[field]
    return normalize_dates(event)


def upsert_by_er_number(tenant: TenantRecord, event: EventRecord) -> Tuple[EventRecord, bool]:
    """
    Store a hybrid/legacy event, replacing an existing event with the same
    ER number (the replacement keeps the existing id).

    Returns (stored event, was_update).
    """
    events = tenant["events"]
    index = find_event_by_er_number(events, event.get("title"))
    if index is not None:
        event = {"id": events[index].get("id"), **event}
    else:
        event = {"id": generate_event_id(events), **event}
    updated = _replace_or_append(events, index, event)
    logger.info(
        f"Event {'updated' if updated else 'created'}: {event['id']}",
        extra={"tenant_id": tenant["id"], "event_id": event["id"]}
    )
    return event, updated


# ============================================================================
# STANDARD ACTIONS
# ============================================================================

def create_event(tenant: TenantRecord, event_data: Dict[str, Any]) -> EventRecord:
    """
    Add an event, or merge into the existing one carrying the same ER number.

    An id is generated when the payload has none.
    """
    events = tenant["events"]
    event_data = normalize_dates(dict(event_data))

    index = find_event_by_er_number(events, event_data.get("title"))
    if index is not None:
        merged = {**events[index], **event_data, "id": events[index].get("id")}
        events[index] = merged
        return merged

    if event_data.get("id") in (None, ""):
        event_data["id"] = generate_event_id(events)
    events.append(event_data)
    return event_data


def update_event(tenant: TenantRecord, event_data: Dict[str, Any]) -> EventRecord:
    """Merge fields into an event found by id, or by ER number when no id is given."""
    events = tenant["events"]
    event_data = normalize_dates(dict(event_data))

    if event_data.get("id") not in (None, ""):
        index = find_event_index(events, event_data["id"])
        if index is None:
            raise EventNotFoundError(event_data["id"], tenant["id"])
    elif event_data.get("title"):
        index = find_event_by_er_number(events, event_data["title"])
        if index is None:
            raise EventNotFoundError(detail=(
                f'No event with ER number found in title "{event_data["title"]}" '
                f'for tenant "{tenant["id"]}"'
            ))
    else:
        raise InvalidInputError("Either event ID or title with ER number is required for update operation")

    # The stored id is kept as-is, whichever way the event was found
    event_data["id"] = events[index].get("id")
    events[index] = {**events[index], **event_data}
    return events[index]


def delete_event(tenant: TenantRecord, event_data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove exactly one event, found by id or by ER number."""
    events = tenant["events"]

    if event_data.get("id") not in (None, ""):
        index = find_event_index(events, event_data["id"])
        if index is None:
            raise EventNotFoundError(event_data["id"], tenant["id"])
    elif event_data.get("title"):
        index = find_event_by_er_number(events, event_data["title"])
        if index is None:
            raise EventNotFoundError(detail=(
                f'No event with ER number found in title "{event_data["title"]}" '
                f'for tenant "{tenant["id"]}"'
            ))
    else:
        raise InvalidInputError("Either event ID or title with ER number is required for delete operation")

    removed = events.pop(index)
    return {"id": removed.get("id"), "deleted": True}


def apply_action(tenant: TenantRecord, action: str, event_data: Any) -> Any:
    """Dispatch a standard-format request to create/update/delete."""
    if action not in ACTIONS:
        raise InvalidInputError(f"Invalid action: {action}")
    event_data = _require_mapping(event_data, "eventData")

    if action == "create":
        result = create_event(tenant, event_data)
    elif action == "update":
        result = update_event(tenant, event_data)
    else:
        result = delete_event(tenant, event_data)

    logger.info(
        f"Event {action}d: {result.get('id')}",
        extra={"tenant_id": tenant["id"], "event_id": result.get("id"), "action": action}
    )
    return result


# ============================================================================
# ID-ADDRESSED OPERATIONS (REST routes)
# ============================================================================

def get_event(tenant: TenantRecord, event_id: str) -> EventRecord:
    index = find_event_index(tenant.get("events", []), event_id)
    if index is None:
        raise EventNotFoundError(event_id, tenant["id"])
    return tenant["events"][index]


def update_event_by_id(tenant: TenantRecord, event_id: str, changes: Dict[str, Any]) -> EventRecord:
    """Merge changes into an event; the id in the path always wins."""
    changes = {k: v for k, v in changes.items() if k not in ("id", "tenantId")}
    return update_event(tenant, {**changes, "id": event_id})


def delete_event_by_id(tenant: TenantRecord, event_id: str) -> Dict[str, Any]:
    return delete_event(tenant, {"id": event_id})


def filter_events(
    events: List[EventRecord],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    resource_id: Optional[str] = None,
) -> List[EventRecord]:
    """
    Filter stored events for listing.

    Excludes events that end before start_date or start after the end of
    the end_date day. Events with unparseable dates only survive when no
    date filter is given.
    """
    window_end = end_of_day(end_date) if end_date else None
    selected = []
    for event in events:
        if resource_id and event.get("resourceId") != resource_id:
            continue
        if start_date or window_end:
            event_start = try_parse_datetime(event.get("start"))
            event_end = try_parse_datetime(event.get("end")) or event_start
            if event_start is None:
                continue
            if start_date and event_end < start_date:
                continue
            if window_end and event_start > window_end:
                continue
        selected.append(event)
    return selected
