"""
Built-in API Suites

Smoke tests against a live (or in-process) backend. Each builder takes an
ApiSession and returns a fresh Suite, so suites never share state between
runs.
"""
from typing import Any, Callable, Dict, List

from labcal.harness import assertions as check
from labcal.harness.api import (
    ApiRequestError,
    ApiSession,
    create_test_event,
    create_test_tenant,
)
from labcal.harness.suite import Suite

SuiteBuilder = Callable[[ApiSession], Suite]


def build_tenant_suite(api: ApiSession) -> Suite:
    suite = Suite("tenants", "Tenant registration, lookup and deletion")

    @suite.test("creates a tenant and fetches it back")
    async def create_and_fetch():
        created = await create_test_tenant(api, name="Harness Lab")
        fetched = (await api.get(f"/api/tenants/{created['id']}"))["data"]
        check.equals(fetched["id"], created["id"])
        check.equals(fetched["name"], "Harness Lab")
        check.equals(len(fetched["resources"]), 3, "New tenants get three default resources")

    @suite.test("rejects a duplicate tenant id with 409")
    async def duplicate_is_conflict():
        created = await create_test_tenant(api, name="Original Name")
        error = await check.raises(
            lambda: api.post("/api/tenants", json={"tenantId": created["id"], "tenantName": "Other"}),
            ApiRequestError,
        )
        check.equals(error.status_code, 409)
        fetched = (await api.get(f"/api/tenants/{created['id']}"))["data"]
        check.equals(fetched["name"], "Original Name")

    @suite.test("rejects a registration without a name")
    async def missing_name_is_bad_request():
        error = await check.raises(
            lambda: api.post("/api/tenants", json={"tenantId": "test-tenant-nameless"}),
            ApiRequestError,
        )
        check.equals(error.status_code, 400)

    @suite.test("deleted tenants are gone")
    async def delete_then_404():
        created = await create_test_tenant(api)
        await api.delete(f"/api/tenants/{created['id']}")
        error = await check.raises(lambda: api.get(f"/api/tenants/{created['id']}"), ApiRequestError)
        check.equals(error.status_code, 404)

    return suite


def build_calendar_event_suite(api: ApiSession) -> Suite:
    suite = Suite("calendar-events", "Event create/update/delete through the multiplexed endpoint")
    state: Dict[str, Any] = {}

    @suite.before_each
    async def fresh_tenant():
        state["tenant"] = await create_test_tenant(api)

    @suite.test("assigns an id to a new event")
    async def create_assigns_id():
        event = await create_test_event(api, state["tenant"]["id"])
        check.is_defined(event.get("id"))
        check.matches(event["start"], r"Z$")

    @suite.test("update merges fields into the event")
    async def update_merges():
        tenant_id = state["tenant"]["id"]
        event = await create_test_event(api, tenant_id, notes="before")
        response = await api.post("/api/calendar-events", json={
            "tenantId": tenant_id,
            "action": "update",
            "eventData": {"id": event["id"], "notes": "after"},
        })
        updated = response["data"]
        check.equals(updated["notes"], "after")
        check.equals(updated["title"], event["title"], "Untouched fields survive an update")

    @suite.test("delete removes exactly one event")
    async def delete_removes_one():
        tenant_id = state["tenant"]["id"]
        first = await create_test_event(api, tenant_id, title="First")
        await create_test_event(api, tenant_id, title="Second")
        await api.post("/api/calendar-events", json={
            "tenantId": tenant_id, "action": "delete", "eventData": {"id": first["id"]},
        })
        remaining = (await api.get(f"/api/tenants/{tenant_id}"))["data"]["events"]
        check.equals([e["title"] for e in remaining], ["Second"])
        error = await check.raises(
            lambda: api.post("/api/calendar-events", json={
                "tenantId": tenant_id, "action": "delete", "eventData": {"id": first["id"]},
            }),
            ApiRequestError,
        )
        check.equals(error.status_code, 404)

    @suite.test("ER numbers upsert instead of duplicating")
    async def er_number_upsert():
        tenant_id = state["tenant"]["id"]
        first = await create_test_event(api, tenant_id, title="ER1001 - Viscosity run")
        second = await create_test_event(api, tenant_id, title="er1001 - Viscosity rerun")
        check.equals(second["id"], first["id"])
        events = (await api.get(f"/api/tenants/{tenant_id}"))["data"]["events"]
        check.equals(len(events), 1)

    @suite.test("rejects an unknown action")
    async def invalid_action():
        error = await check.raises(
            lambda: api.post("/api/calendar-events", json={
                "tenantId": state["tenant"]["id"], "action": "archive", "eventData": {"id": "1"},
            }),
            ApiRequestError,
        )
        check.equals(error.status_code, 400)

    return suite


def build_view_suite(api: ApiSession) -> Suite:
    suite = Suite("views", "Analytical views answer for a populated tenant")
    state: Dict[str, Any] = {}

    @suite.before_all
    async def populated_tenant():
        tenant = await create_test_tenant(api)
        await create_test_event(api, tenant["id"])
        await create_test_event(api, tenant["id"], purpose="Maintenance", resourceId="equipment-2")
        state["tenant_id"] = tenant["id"]

    async def view(name: str, **params: Any) -> Any:
        return (await api.get(f"/api/tenants/{state['tenant_id']}/{name}", params=params))["data"]

    @suite.test("analytics reports metrics")
    async def analytics_metrics():
        data = await view("analytics", range="30days")
        check.has_property(data, "metrics")
        check.equals(data["metrics"]["totalEquipment"], 3)

    @suite.test("dashboard has one card per resource")
    async def dashboard_cards():
        check.equals(len(await view("dashboard")), 3)

    @suite.test("capacity plan covers the selected resources")
    async def capacity_rows():
        data = await view("capacity", unit="day")
        check.is_true(len(data["heatmap"]) > 0, "Expected at least one heatmap row")

    @suite.test("gantt chart spans a week")
    async def gantt_week():
        data = await view("gantt", range="week")
        check.equals(len(data["days"]), 7)

    @suite.test("technician schedule lists the booking technician")
    async def technicians():
        data = await view("technicians")
        check.contains(data["technicians"], "Test Technician")

    return suite


SUITES: Dict[str, SuiteBuilder] = {
    "tenants": build_tenant_suite,
    "calendar-events": build_calendar_event_suite,
    "views": build_view_suite,
}


def available_suites() -> List[Dict[str, Any]]:
    """Name, description and test names of every built-in suite."""
    listing = []
    for name, builder in SUITES.items():
        # Builders only register closures; a session is not touched until run time
        suite = builder(None)
        listing.append({
            "name": name,
            "description": suite.description,
            "tests": [t.name for t in suite.tests],
        })
    return listing


def build_suites(api: ApiSession, names: List[str] = None) -> List[Suite]:
    """Instantiate the named suites (all of them when names is empty)."""
    names = names or list(SUITES)
    unknown = [n for n in names if n not in SUITES]
    if unknown:
        raise ValueError(f"Unknown test suite(s): {', '.join(unknown)}")
    return [SUITES[n](api) for n in names]
