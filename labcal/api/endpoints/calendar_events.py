"""
Calendar Event Endpoints

POST /calendar-events is multiplexed over three payload shapes (standard,
hybrid, legacy); see labcal.services.calendar_events. The id-addressed
routes below it are plain REST over a single tenant's events.

Every write runs inside one store transaction: a request that fails
half-way leaves neither memory nor disk changed.
"""
import copy
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from labcal.api.deps import parse_date_param
from labcal.api.responses import success_response
from labcal.config import Settings, get_settings
from labcal.core.exceptions import InvalidInputError
from labcal.services import calendar_events as events_service
from labcal.store import TenantStore, get_store
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/calendar-events", tags=["calendar-events"])


def _tenant_for_write(store: TenantStore, tenant_id: str, settings: Settings) -> Dict[str, Any]:
    """Live tenant record; unknown tenants are provisioned when AUTO_CREATE_TENANTS is on."""
    if settings.AUTO_CREATE_TENANTS:
        return store.ensure_tenant(tenant_id)
    return store.record(tenant_id)


def _require_tenant_id(tenant_id: Optional[Any]) -> str:
    if tenant_id is None or str(tenant_id).strip() == "":
        raise InvalidInputError("Tenant ID is required")
    return str(tenant_id).strip()


@router.post("")
async def post_calendar_event(
    payload: Dict[str, Any] = Body(...),
    store: TenantStore = Depends(get_store),
    settings: Settings = Depends(get_settings)
):
    """
    Create, update or delete an event.

    Accepted bodies (checked in this order):
    - Hybrid: {title, tenantId, start, end, ...}
        Upsert by ER number; equipment is mapped to a resourceId.
    - Legacy: {calendarId, summary, StartUse, EndUse, ...}
        Tenant defaults to "default-tenant", resource to "equipment-1".
    - Standard: {tenantId, action, eventData}
        action is create, update or delete.

    Anything else is a 400 listing the accepted formats.
    """
    request_format = events_service.detect_format(payload)

    if request_format == "legacy":
        tenant_id = _require_tenant_id(payload.get("tenantId") or events_service.LEGACY_DEFAULT_TENANT)
    else:
        tenant_id = _require_tenant_id(payload.get("tenantId"))

    logger.debug(f"Calendar event request ({request_format})", extra={"tenant_id": tenant_id})

    with store.transaction():
        tenant = _tenant_for_write(store, tenant_id, settings)

        if request_format == "hybrid":
            event, updated = events_service.upsert_by_er_number(
                tenant, events_service.build_hybrid_event(tenant, payload)
            )
            message = f"Event {'updated' if updated else 'created'} from hybrid format"
            result = event
        elif request_format == "legacy":
            event, updated = events_service.upsert_by_er_number(
                tenant, events_service.build_legacy_event(payload)
            )
            message = f"Event {'updated' if updated else 'created'} from legacy format"
            result = event
        else:
            action = str(payload["action"])
            result = events_service.apply_action(tenant, action, payload["eventData"])
            message = f"Event {action}d successfully"

        result = copy.deepcopy(result)

    return success_response(result, message)


@router.get("")
async def list_calendar_events(
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    resource_id: Optional[str] = Query(None, alias="resourceId"),
    store: TenantStore = Depends(get_store)
):
    """
    List a tenant's events.

    Filters:
    - startDate: drop events that end before it
    - endDate: drop events that start after the end of that day
    - resourceId: exact match
    """
    tenant = store.get_tenant(_require_tenant_id(tenant_id))
    events = events_service.filter_events(
        tenant.get("events", []),
        start_date=parse_date_param(start_date, "startDate"),
        end_date=parse_date_param(end_date, "endDate"),
        resource_id=resource_id,
    )
    return success_response(events, count=len(events))


@router.get("/{event_id}")
async def get_calendar_event(
    event_id: str,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    store: TenantStore = Depends(get_store)
):
    """Get one event by id."""
    tenant = store.get_tenant(_require_tenant_id(tenant_id))
    return success_response(events_service.get_event(tenant, event_id))


@router.put("/{event_id}")
async def update_calendar_event(
    event_id: str,
    changes: Dict[str, Any] = Body(...),
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    store: TenantStore = Depends(get_store)
):
    """
    Merge fields into an existing event.

    tenantId may be given as a query parameter or in the body.
    """
    tenant_id = _require_tenant_id(tenant_id or changes.get("tenantId"))
    with store.transaction():
        event = events_service.update_event_by_id(store.record(tenant_id), event_id, changes)
        event = copy.deepcopy(event)

    logger.info(f"Event updated: {event_id}", extra={"tenant_id": tenant_id, "event_id": event_id})
    return success_response(event, "Event updated successfully")


@router.delete("/{event_id}")
async def delete_calendar_event(
    event_id: str,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    store: TenantStore = Depends(get_store)
):
    """Delete one event by id."""
    tenant_id = _require_tenant_id(tenant_id)
    with store.transaction():
        result = events_service.delete_event_by_id(store.record(tenant_id), event_id)

    logger.info(f"Event deleted: {event_id}", extra={"tenant_id": tenant_id, "event_id": event_id})
    return success_response(result, "Event deleted successfully")
