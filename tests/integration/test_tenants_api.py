"""
Integration tests for the tenant API.
"""

import json


class TestCreateTenant:
    """Tests for POST /api/tenants."""

    def test_creates_tenant_with_default_resources(self, client, store):
        response = client.post("/api/tenants", json={"tenantId": "chem-lab", "tenantName": "Chemistry Lab"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == "chem-lab"
        assert body["data"]["events"] == []
        assert len(body["data"]["resources"]) == 3
        assert "chem-lab" in json.loads(store.path.read_text())

    def test_duplicate_is_conflict_and_keeps_original(self, client, lab):
        response = client.post("/api/tenants", json={"tenantId": "lab-a", "tenantName": "Other"})

        assert response.status_code == 409
        assert response.json() == {"success": False, "error": 'Tenant "lab-a" already exists'}
        assert client.get("/api/tenants/lab-a").json()["data"]["name"] == "Lab A"

    def test_missing_name_is_rejected(self, client):
        response = client.post("/api/tenants", json={"tenantId": "chem-lab"})

        assert response.status_code == 400
        assert response.json()["error"] == "Both tenant ID and name are required"

    def test_non_slug_id_is_rejected(self, client, store):
        response = client.post("/api/tenants", json={"tenantId": "chem lab!", "tenantName": "Chem"})

        assert response.status_code == 400
        assert len(store) == 0

    def test_malformed_body_is_bad_request(self, client):
        response = client.post("/api/tenants", content="not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestReadAndDeleteTenant:
    """Tests for GET and DELETE on tenants."""

    def test_list_tenants(self, client, lab):
        body = client.get("/api/tenants").json()

        assert body["success"] is True
        assert [t["id"] for t in body["data"]] == ["lab-a"]

    def test_get_missing_tenant(self, client):
        response = client.get("/api/tenants/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": 'Tenant "nope" not found'}

    def test_delete_tenant(self, client, lab, store):
        response = client.delete("/api/tenants/lab-a")

        assert response.status_code == 200
        assert response.json()["message"] == 'Tenant "lab-a" deleted successfully'
        assert "lab-a" not in store
        assert client.get("/api/tenants/lab-a").status_code == 404

    def test_delete_missing_tenant(self, client):
        assert client.delete("/api/tenants/nope").status_code == 404


class TestServiceRoutes:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"

    def test_process_time_header(self, client):
        assert float(client.get("/").headers["X-Process-Time"]) >= 0

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["success"] is False
