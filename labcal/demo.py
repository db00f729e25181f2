"""
Demo Tenant

Seeds a "demo-tenant" with a small coatings/adhesives lab (CASE industry)
so the views have something to show on a fresh install. Enabled with
SEED_DEMO_TENANT=true; an existing demo tenant is never touched.

Bookings are laid out relative to the current week so the dashboard and
Gantt chart always have current data.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from labcal.models.tenant import Tenant
from labcal.store import TenantStore
from labcal.utils.dates import isoformat_utc, start_of_week, utcnow
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_TENANT_ID = "demo-tenant"
DEMO_TENANT_NAME = "Demo Tenant"

DEMO_RESOURCES = [
    {"id": "demo-equip-1", "title": "Viscometer 1", "location": "Coatings Lab A"},
    {"id": "demo-equip-2", "title": "Rheometer 1", "location": "Polymer Lab"},
    {"id": "demo-equip-3", "title": "FTIR 1", "location": "QC Lab"},
    {"id": "demo-equip-4", "title": "DSC 1", "location": "Thermal Lab"},
    {"id": "demo-equip-5", "title": "SprayBooth 1", "location": "Application Lab"},
    {"id": "demo-equip-6", "title": "SaltSpray 1", "location": "Exposure Chamber"},
]

# (day offset from this week's Sunday, start hour, duration hours, resource index,
#  title, technician, sample type, purpose, cost)
DEMO_BOOKINGS = [
    (-6, 9.0, 2.5, 0, "Paint Viscosity Testing", "Dr. Maria Chen", "Interior Latex Paint", "Utilization", 320),
    (-5, 14.0, 1.5, 1, "Rheology Analysis", "Sarah Johnson", "Epoxy Formulation", "Utilization", 410),
    (-4, 8.5, 1.5, 2, "Scheduled Maintenance", "Michael Brown", "Maintenance", "Maintenance", 250),
    (-3, 10.5, 4.5, 5, "Emergency Repair", "Alex Rodriguez", "Chamber Controller", "Broken", 900),
    (1, 13.0, 4.0, 3, "Thermal Analysis", "Dr. Emily Taylor", "Sealant Samples", "Utilization", 580),
    (2, 9.0, 3.0, 4, "Spray Application Test", "David Garcia", "Automotive Coating", "Utilization", 490),
    (3, 13.0, 3.0, 5, "Chemical Resistance", "Thomas Nguyen", "Industrial Coating", "Utilization", 620),
    (3, 9.0, 2.0, 0, "Viscosity QC Batch", "Dr. Maria Chen", "Primer Batch 42", "Utilization", 300),
    (4, 8.0, 1.0, 3, "DSC Calibration", "Michael Brown", "Indium Standard", "Maintenance", 150),
    (5, 10.0, 6.0, 1, "Cure Profile Study", "Sarah Johnson", "Two-part Polyurethane", "Utilization", 700),
    (8, 9.0, 2.0, 2, "Spectral Library Update", "Dr. Emily Taylor", "Reference Films", "Utilization", 200),
    (10, 11.0, 5.0, 4, "Booth Filter Replacement", "David Garcia", "Maintenance", "Maintenance", 380),
]


def build_demo_events(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    week_start = start_of_week(now or utcnow())
    events = []
    for index, booking in enumerate(DEMO_BOOKINGS, start=1):
        day, hour, duration, resource_index, title, technician, sample, purpose, cost = booking
        resource = DEMO_RESOURCES[resource_index]
        start = week_start + timedelta(days=day, hours=hour)
        events.append({
            "id": f"demo-event-{index}",
            "title": title,
            "start": isoformat_utc(start),
            "end": isoformat_utc(start + timedelta(hours=duration)),
            "resourceId": resource["id"],
            "equipment": resource["title"],
            "location": resource["location"],
            "technician": technician,
            "sampleType": sample,
            "purpose": purpose,
            "cost": cost,
        })
    return events


def seed_demo_tenant(store: TenantStore, now: Optional[datetime] = None) -> bool:
    """Create the demo tenant unless it exists. Returns True when it seeded."""
    with store.transaction():
        if DEMO_TENANT_ID in store:
            return False
        record = Tenant.new(DEMO_TENANT_ID, DEMO_TENANT_NAME).to_record()
        record["resources"] = [dict(r) for r in DEMO_RESOURCES]
        record["events"] = build_demo_events(now)
        store.put_tenant(record)

    logger.info(f"Seeded demo tenant with {len(DEMO_BOOKINGS)} bookings", extra={"tenant_id": DEMO_TENANT_ID})
    return True
