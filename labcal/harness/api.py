"""
Harness API Utilities

Async HTTP session for smoke tests plus the helpers that keep a live
backend clean:

- cleanup registry: every tenant a test creates is recorded and deleted
  after the run
- retry_api_call: exponential backoff for flaky calls (5xx and transport
  errors only; 4xx responses are real answers and are not retried)
- force cleanup: deletes every "test-tenant-*" tenant, used when a run
  times out and the registry may be incomplete
"""
import asyncio
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import httpx

from labcal.utils.dates import isoformat_utc, utcnow
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

TEST_TENANT_PREFIX = "test-tenant-"
DEFAULT_REQUEST_TIMEOUT = 5.0


class ApiRequestError(Exception):
    """Raised for any non-2xx response."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"API request failed: {status_code} {body}")
        self.status_code = status_code
        self.body = body


class CleanupRegistry:
    """Tenants created during a run, deleted afterwards."""

    def __init__(self):
        self.tenants: Set[str] = set()

    def register_tenant(self, tenant_id: str) -> None:
        self.tenants.add(tenant_id)

    def discard_tenant(self, tenant_id: str) -> None:
        self.tenants.discard(tenant_id)

    def clear(self) -> None:
        self.tenants.clear()


# Process-wide registry used when a session is not given its own
cleanup_registry = CleanupRegistry()


class ApiSession:
    """
    Thin async wrapper over httpx.AsyncClient.

    Returns decoded JSON for 2xx responses and raises ApiRequestError
    otherwise.
    """

    def __init__(self, client: httpx.AsyncClient, registry: Optional[CleanupRegistry] = None):
        self.client = client
        self.registry = registry if registry is not None else cleanup_registry

    @classmethod
    def for_url(cls, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT,
                registry: Optional[CleanupRegistry] = None) -> "ApiSession":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout), registry)

    @classmethod
    def for_app(cls, app: Any, registry: Optional[CleanupRegistry] = None) -> "ApiSession":
        """Session that calls an ASGI app in-process (no network)."""
        transport = httpx.ASGITransport(app=app)
        return cls(httpx.AsyncClient(transport=transport, base_url="http://labcal.internal"), registry)

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.client.request(method, path, **kwargs)
        if response.is_error:
            raise ApiRequestError(response.status_code, response.text)
        if not response.content:
            return None
        return response.json()

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ApiSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, ApiRequestError):
        return error.status_code >= 500
    return isinstance(error, httpx.TransportError)


async def retry_api_call(
    call: Callable[[], Awaitable[Any]],
    retries: int = 3,
    base_delay: float = 0.2,
) -> Any:
    """
    Await call(), retrying retryable failures with exponential backoff.

    Delays are base_delay, 2*base_delay, 4*base_delay, ... The last error
    is re-raised once retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except (ApiRequestError, httpx.TransportError) as e:
            if attempt >= retries or not _is_retryable(e):
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"API call failed ({e}); retrying in {delay:.2f}s (attempt {attempt + 1}/{retries})")
            await asyncio.sleep(delay)
            attempt += 1


# ============================================================================
# FIXTURE HELPERS
# ============================================================================

async def create_test_tenant(session: ApiSession, suffix: Optional[str] = None,
                             name: Optional[str] = None) -> Dict[str, Any]:
    """Register a throwaway tenant and record it for cleanup."""
    tenant_id = f"{TEST_TENANT_PREFIX}{suffix or uuid.uuid4().hex[:8]}"
    response = await session.post(
        "/api/tenants",
        json={"tenantId": tenant_id, "tenantName": name or f"Test Tenant {tenant_id}"},
    )
    session.registry.register_tenant(tenant_id)
    return response["data"]


async def create_test_event(session: ApiSession, tenant_id: str, **overrides: Any) -> Dict[str, Any]:
    """Create a two-hour event starting an hour from now."""
    start = utcnow() + timedelta(hours=1)
    event_data = {
        "title": "Test Event",
        "start": isoformat_utc(start),
        "end": isoformat_utc(start + timedelta(hours=2)),
        "resourceId": "equipment-1",
        "technician": "Test Technician",
        "purpose": "Utilization",
    }
    event_data.update(overrides)
    response = await session.post(
        "/api/calendar-events",
        json={"tenantId": tenant_id, "action": "create", "eventData": event_data},
    )
    return response["data"]


async def _delete_tenants(session: ApiSession, tenant_ids: List[str]) -> Dict[str, List[str]]:
    cleaned: List[str] = []
    failed: List[str] = []
    for tenant_id in sorted(tenant_ids):
        try:
            await session.delete(f"/api/tenants/{tenant_id}")
        except ApiRequestError as e:
            if e.status_code != 404:
                logger.error(f"Failed to clean up tenant {tenant_id}: {e}")
                failed.append(tenant_id)
                continue
        except httpx.TransportError as e:
            logger.error(f"Failed to clean up tenant {tenant_id}: {e}")
            failed.append(tenant_id)
            continue
        # Already gone counts as cleaned
        cleaned.append(tenant_id)
        session.registry.discard_tenant(tenant_id)
    return {"cleaned": cleaned, "failed": failed}


async def cleanup_test_resources(session: ApiSession) -> Dict[str, List[str]]:
    """Delete every tenant in the session's cleanup registry."""
    result = await _delete_tenants(session, list(session.registry.tenants))
    if result["cleaned"]:
        logger.info(f"Cleaned up {len(result['cleaned'])} test tenants")
    return result


async def force_cleanup_test_tenants(session: ApiSession) -> Dict[str, List[str]]:
    """Delete registered tenants plus any tenant whose id looks like a test tenant."""
    targets = set(session.registry.tenants)
    try:
        listing = await session.get("/api/tenants")
        targets.update(
            t["id"] for t in listing.get("data", [])
            if str(t.get("id", "")).startswith(TEST_TENANT_PREFIX)
        )
    except (ApiRequestError, httpx.TransportError) as e:
        logger.error(f"Could not list tenants for forced cleanup: {e}")
    result = await _delete_tenants(session, list(targets))
    logger.warning(f"Forced cleanup removed {len(result['cleaned'])} test tenants")
    return result


async def diagnose_environment(session: ApiSession) -> Dict[str, Any]:
    """Check that the backend is reachable and the tenant API answers."""
    checks = []
    for name, path in (("health", "/health"), ("tenant-api", "/api/tenants")):
        try:
            await session.get(path)
            checks.append({"name": name, "ok": True, "detail": None})
        except (ApiRequestError, httpx.TransportError) as e:
            checks.append({"name": name, "ok": False, "detail": str(e)})
    return {"healthy": all(c["ok"] for c in checks), "checks": checks}
