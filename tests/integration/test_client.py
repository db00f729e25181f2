"""
Integration tests for the synchronous API client, driven through TestClient.
"""

import pytest

from labcal.client import ApiError, LabCalendarClient


@pytest.fixture
def api(client):
    return LabCalendarClient(client=client)


class TestLabCalendarClient:
    """Tests for the REST wrapper."""

    def test_tenant_lifecycle(self, api):
        created = api.create_tenant("chem-lab", "Chemistry Lab")
        assert created["id"] == "chem-lab"
        assert [t["id"] for t in api.fetch_all_tenants()] == ["chem-lab"]

        assert api.delete_tenant("chem-lab") == 'Tenant "chem-lab" deleted successfully'
        assert api.fetch_tenant("chem-lab") is None

    def test_errors_carry_server_message(self, api, lab):
        with pytest.raises(ApiError) as exc:
            api.create_tenant("lab-a", "Duplicate")

        assert exc.value.status_code == 409
        assert str(exc.value) == 'Tenant "lab-a" already exists'

    def test_submit_and_list_events(self, api, lab):
        event = api.submit_event("lab-a", {
            "title": "HPLC run", "start": "2024-03-13T10:00:00Z", "end": "2024-03-13T12:00:00Z",
            "resourceId": "equipment-1",
        })
        api.submit_event("lab-a", {"id": event["id"], "title": "HPLC rerun"}, action="update")

        events = api.list_events("lab-a", start_date="2024-03-13", resource_id="equipment-1")
        assert [e["title"] for e in events] == ["HPLC rerun"]

    def test_fetch_view_drops_empty_params(self, api, lab):
        chart = api.fetch_view("lab-a", "gantt", start="2024-03-10", range=None)
        assert chart["range"] == "week"
        assert chart["start"] == "2024-03-10T00:00:00.000Z"


class TestPollTenant:
    """Tests for the polling loop."""

    def test_recomputes_every_tick(self, api, lab, store):
        ticks = []

        def add_event(seconds):
            ticks.append(seconds)
            with store.transaction():
                store.record("lab-a")["events"].append({"id": str(len(ticks)), "title": "Run"})

        counts = list(api.poll_tenant(
            "lab-a", lambda tenant: len(tenant["events"]), interval=30, max_ticks=3, sleep=add_event,
        ))

        assert counts == [0, 1, 2]
        assert ticks == [30, 30]

    def test_stops_when_tenant_disappears(self, api, lab, store):
        results = list(api.poll_tenant(
            "lab-a", lambda tenant: tenant["id"], max_ticks=5, sleep=lambda _: store.delete_tenant("lab-a"),
        ))
        assert results == ["lab-a"]

    def test_failed_ticks_are_skipped(self, lab, client):
        api = LabCalendarClient(client=client)
        calls = []
        original = api.fetch_tenant

        def flaky_fetch(tenant_id):
            calls.append(tenant_id)
            if len(calls) == 1:
                raise ApiError("Service unavailable", 503)
            return original(tenant_id)

        api.fetch_tenant = flaky_fetch
        results = list(api.poll_tenant("lab-a", lambda tenant: tenant["name"], max_ticks=2, sleep=lambda _: None))

        assert results == ["Lab A"]
