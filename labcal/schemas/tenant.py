"""
Tenant Schemas

Request models for tenant registration.
"""
from typing import Optional

from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    """
    Tenant registration body.

    Fields are optional at the schema level so a missing value yields the
    domain error ("Both tenant ID and name are required") rather than a
    generic validation error.
    """
    tenant_id: Optional[str] = Field(None, alias="tenantId")
    tenant_name: Optional[str] = Field(None, alias="tenantName")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "tenantId": "chem-lab",
                "tenantName": "Chemistry Lab"
            }
        }
