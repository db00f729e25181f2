"""
API Client

Synchronous client for the lab calendar REST API. Unwraps the
{"success", "data"} envelope and raises ApiError (carrying the server's
"error" text) for non-2xx responses.

    with LabCalendarClient("http://localhost:3001") as api:
        api.create_tenant("chem-lab", "Chemistry Lab")
        api.submit_event("chem-lab", {"title": "HPLC run", ...})

Any httpx.Client can be injected (e.g. FastAPI's TestClient).
"""
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx

from labcal.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 30.0


class ApiError(Exception):
    """Raised when the API answers with an error status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class LabCalendarClient:
    """Thin wrapper translating REST responses into plain data."""

    def __init__(self, base_url: str = "", client: Optional[httpx.Client] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self._owns_client = client is None
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "LabCalendarClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self.client.request(method, path, **kwargs)
        if response.is_error:
            try:
                message = response.json().get("error") or response.reason_phrase
            except ValueError:
                message = response.text or response.reason_phrase
            raise ApiError(message, response.status_code)
        return response.json()

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    def fetch_all_tenants(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/tenants")["data"]

    def fetch_tenant(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        """The tenant, or None if it does not exist."""
        try:
            return self._request("GET", f"/api/tenants/{tenant_id}")["data"]
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise

    def create_tenant(self, tenant_id: str, tenant_name: str) -> Dict[str, Any]:
        body = {"tenantId": tenant_id, "tenantName": tenant_name}
        return self._request("POST", "/api/tenants", json=body)["data"]

    def delete_tenant(self, tenant_id: str) -> str:
        return self._request("DELETE", f"/api/tenants/{tenant_id}")["message"]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def submit_event(self, tenant_id: str, event_data: Dict[str, Any], action: str = "create") -> Dict[str, Any]:
        """Create, update or delete an event through the multiplexed endpoint."""
        body = {"tenantId": tenant_id, "action": action, "eventData": event_data}
        return self._request("POST", "/api/calendar-events", json=body)["data"]

    def list_events(self, tenant_id: str, start_date: Optional[str] = None,
                    end_date: Optional[str] = None, resource_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"tenantId": tenant_id}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        if resource_id:
            params["resourceId"] = resource_id
        return self._request("GET", "/api/calendar-events", params=params)["data"]

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def fetch_view(self, tenant_id: str, view: str, **params: Any) -> Any:
        """GET /api/tenants/{tenant_id}/{view}; None-valued params are dropped."""
        query = {k: v for k, v in params.items() if v is not None}
        return self._request("GET", f"/api/tenants/{tenant_id}/{view}", params=query)["data"]

    def poll_tenant(
        self,
        tenant_id: str,
        compute: Callable[[Dict[str, Any]], Any],
        interval: float = DEFAULT_POLL_INTERVAL,
        max_ticks: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Iterator[Any]:
        """
        Re-fetch a tenant every `interval` seconds and yield compute(tenant).

        Every tick recomputes from scratch. A tick whose fetch fails is
        logged and skipped; a tenant that disappears ends the loop.
        """
        tick = 0
        while max_ticks is None or tick < max_ticks:
            if tick:
                sleep(interval)
            tick += 1
            try:
                tenant = self.fetch_tenant(tenant_id)
            except (ApiError, httpx.TransportError) as e:
                logger.warning(f"Polling {tenant_id} failed: {e}", extra={"tenant_id": tenant_id})
                continue
            if tenant is None:
                logger.info(f"Tenant {tenant_id} no longer exists; stopping poll", extra={"tenant_id": tenant_id})
                return
            yield compute(tenant)
