"""
Tenant Model

The tenant (a lab) is the isolation boundary: every event and resource lives
inside exactly one tenant record. Records are stored as plain dicts keyed by
tenant id; these models build new records and give views a typed handle on
stored ones.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from labcal.utils.dates import isoformat_utc, utcnow

# Every new lab starts with the same three instruments
DEFAULT_RESOURCES = [
    {"id": "equipment-1", "title": "HPLC Machine"},
    {"id": "equipment-2", "title": "Mass Spectrometer"},
    {"id": "equipment-3", "title": "PCR Machine"},
]


class Resource(BaseModel):
    """A bookable piece of lab equipment."""
    id: str
    title: str = ""
    location: Optional[str] = None

    class Config:
        extra = "allow"


class Tenant(BaseModel):
    """A lab and its calendar."""
    id: str
    name: str
    created_at: Optional[str] = Field(None, alias="createdAt")
    events: List[Dict[str, Any]] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        extra = "allow"

    @classmethod
    def new(cls, tenant_id: str, name: Optional[str] = None) -> "Tenant":
        """Create a fresh tenant seeded with the default resources."""
        return cls(
            id=tenant_id,
            name=name or tenant_id,
            created_at=isoformat_utc(utcnow()),
            events=[],
            resources=[Resource(**r) for r in DEFAULT_RESOURCES],
        )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
