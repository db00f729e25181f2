"""
API Dependencies

Reusable FastAPI dependencies: the tenant store, tenant lookup for the
read-only views, query-date parsing and admin authentication.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from labcal.core.exceptions import AuthenticationError, InvalidInputError
from labcal.core.security import ADMIN_SUBJECT, decode_access_token
from labcal.models.event import Event, parse_events
from labcal.models.tenant import Tenant
from labcal.store import TenantStore, get_store
from labcal.utils.dates import parse_datetime, utcnow
from labcal.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# auto_error=False so a missing header goes through our own 401 envelope
security = HTTPBearer(auto_error=False)


class TenantSnapshot:
    """A tenant record read once per request, with typed events and resources."""

    def __init__(self, record: Dict[str, Any]):
        self.tenant = Tenant.model_validate(record)
        self.events: List[Event] = parse_events(self.tenant.events)
        self.now: datetime = utcnow()

    @property
    def resources(self):
        return self.tenant.resources


def get_tenant_snapshot(tenant_id: str, store: TenantStore = Depends(get_store)) -> TenantSnapshot:
    """
    Load a tenant for the analytical views.

    Raises TenantNotFoundError (404) for an unknown tenant id.
    """
    return TenantSnapshot(store.get_tenant(tenant_id))


def parse_date_param(value: Optional[str], name: str) -> Optional[datetime]:
    """Parse an optional date query parameter; 400 on garbage."""
    if value is None or value == "":
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {name}: {value}")


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """
    Require a valid admin bearer token.

    Use this dependency for admin-only endpoints.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("sub") != ADMIN_SUBJECT:
        log_security_event("invalid_token", {"reason": "invalid_or_expired"}, logger)
        raise AuthenticationError("Invalid or expired token")

    return payload
