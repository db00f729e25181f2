"""
View Endpoints

Read-only analytical views over one tenant. Each request reads the tenant
once and recomputes the view from its raw events and resources; nothing is
cached between requests.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from labcal.api.deps import TenantSnapshot, get_tenant_snapshot, parse_date_param
from labcal.api.responses import success_response
from labcal.services import analytics, capacity, gantt, schedule
from labcal.utils.dates import end_of_day, start_of_day
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["views"])


@router.get("/analytics")
async def get_analytics(
    time_range: str = Query(analytics.DEFAULT_TIME_RANGE, alias="range"),
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """
    Utilization analytics for 7days, 30days, 90days or 12months.

    Includes totals, per-equipment counts, top technicians and six
    months of monthly trends.
    """
    return success_response(
        analytics.summarize(snapshot.resources, snapshot.events, snapshot.now, time_range)
    )


@router.get("/utilization")
async def get_utilization(
    start: Optional[str] = None,
    end: Optional[str] = None,
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """
    Purpose breakdown (utilization / maintenance / broken / idle), costs
    and ROI per resource.

    Defaults to the 30 days ending at the end of today. end is inclusive
    of its whole day.
    """
    period_start = parse_date_param(start, "start")
    period_end = parse_date_param(end, "end")
    if period_end is not None:
        period_end = end_of_day(period_end)
    else:
        period_end = end_of_day(snapshot.now)
    if period_start is None:
        period_start = start_of_day(analytics.range_start(period_end, analytics.DEFAULT_TIME_RANGE))

    return success_response(
        analytics.utilization_breakdown(snapshot.resources, snapshot.events, period_start, period_end)
    )


@router.get("/capacity")
async def get_capacity(
    start: Optional[str] = None,
    end: Optional[str] = None,
    unit: str = capacity.DEFAULT_TIME_UNIT,
    resources: Optional[str] = Query(None, description="Comma-separated resource ids"),
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """
    Capacity plan: heatmap, forecast and bottleneck ranking.

    Defaults to the current month in daily slots for the five most used
    resources.
    """
    resource_ids = [r.strip() for r in resources.split(",") if r.strip()] if resources else None
    return success_response(capacity.plan(
        snapshot.resources,
        snapshot.events,
        snapshot.now,
        start=parse_date_param(start, "start"),
        end=parse_date_param(end, "end"),
        unit=unit,
        resource_ids=resource_ids,
    ))


@router.get("/dashboard")
async def get_dashboard(snapshot: TenantSnapshot = Depends(get_tenant_snapshot)):
    """Per-resource status and this week's bookings."""
    return success_response(
        schedule.resource_dashboard(snapshot.resources, snapshot.events, snapshot.now)
    )


@router.get("/equipment")
async def get_equipment(
    status: str = "all",
    sort: str = "name",
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """Equipment list with status, next reservation and reservation count."""
    return success_response(
        schedule.equipment_list(snapshot.resources, snapshot.events, snapshot.now, status=status, sort=sort)
    )


@router.get("/technicians")
async def get_technicians(
    technician: str = "all",
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """Technician list and the selected technician's schedule."""
    return success_response(schedule.technician_schedule(snapshot.events, technician))


@router.get("/gantt")
async def get_gantt(
    start: Optional[str] = None,
    view_range: str = Query(gantt.DEFAULT_VIEW_RANGE, alias="range"),
    snapshot: TenantSnapshot = Depends(get_tenant_snapshot)
):
    """
    Gantt chart for a week, two weeks or a month.

    start defaults to the Sunday of the current week.
    """
    return success_response(gantt.build_chart(
        snapshot.resources,
        snapshot.events,
        snapshot.now,
        start=parse_date_param(start, "start"),
        view_range=view_range,
    ))
