"""
Tenant Endpoints

Tenant lifecycle: register, list, fetch, delete.
A new tenant is seeded with the default resources.
"""
import re

from fastapi import APIRouter, Depends, status

from labcal.api.responses import success_response
from labcal.core.exceptions import InvalidInputError
from labcal.schemas.tenant import TenantCreate
from labcal.store import TenantStore, get_store
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])

TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    store: TenantStore = Depends(get_store)
):
    """
    Register a new tenant.

    VALIDATION:
    - tenantId and tenantName are both required (400)
    - tenantId is a slug: letters, digits, hyphen, underscore (400)
    - tenantId must be unused (409, existing tenant left untouched)
    """
    tenant_id = (tenant_data.tenant_id or "").strip()
    tenant_name = (tenant_data.tenant_name or "").strip()

    if not tenant_id or not tenant_name:
        raise InvalidInputError("Both tenant ID and name are required")

    if not TENANT_ID_PATTERN.match(tenant_id):
        raise InvalidInputError(
            "Tenant ID may only contain letters, numbers, hyphens and underscores"
        )

    record = store.create_tenant(tenant_id, tenant_name)
    return success_response(record)


@router.get("")
async def list_tenants(store: TenantStore = Depends(get_store)):
    """List every tenant with its events and resources."""
    return success_response(store.list_tenants())


@router.get("/{tenant_id}")
async def get_tenant(tenant_id: str, store: TenantStore = Depends(get_store)):
    """Get a tenant by id (404 if absent)."""
    return success_response(store.get_tenant(tenant_id))


@router.delete("/{tenant_id}")
async def delete_tenant(tenant_id: str, store: TenantStore = Depends(get_store)):
    """
    Delete a tenant and everything it owns.

    NOTE: There is no soft delete; the record is gone from the data file
    after this returns.
    """
    store.delete_tenant(tenant_id)
    return success_response(message=f'Tenant "{tenant_id}" deleted successfully')
