"""
Event Model

Calendar events are stored as free-form JSON objects: whatever fields a
client posts are kept verbatim. This model is the typed, read-only view the
analytical computations work with.

Lenient about the data it reads:
- purpose may be missing or misspelled (counts as Utilization)
- cost may be missing, a string, or garbage (counts as 0)
- purpose/cost/technician/equipment may live under extendedProps
  (the shape calendar widgets export)
"""
import logging
import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from labcal.utils.dates import hours_between, parse_datetime

logger = logging.getLogger(__name__)

# Fields that calendar widgets tuck into extendedProps
EXTENDED_FIELDS = ("purpose", "cost", "technician", "equipment")

# Largest cost taken at face value; keeps per-resource totals finite
MAX_COST = 1e15


class Purpose(str, Enum):
    """Classification of an event."""
    UTILIZATION = "Utilization"
    MAINTENANCE = "Maintenance"
    BROKEN = "Broken"

    @classmethod
    def coerce(cls, value: Any) -> "Purpose":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for purpose in cls:
                if purpose.value.lower() == value.strip().lower():
                    return purpose
        return cls.UTILIZATION

    @property
    def is_downtime(self) -> bool:
        return self is not Purpose.UTILIZATION


class Event(BaseModel):
    """Typed view of a stored calendar event."""
    id: Optional[str] = None
    title: str = ""
    start: datetime
    end: datetime
    resource_id: Optional[str] = Field(None, alias="resourceId")
    equipment: Optional[str] = None
    technician: Optional[str] = None
    purpose: Purpose = Purpose.UTILIZATION
    cost: float = 0.0

    class Config:
        populate_by_name = True
        extra = "allow"

    @model_validator(mode="before")
    @classmethod
    def merge_extended_props(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        extended = data.get("extendedProps")
        if isinstance(extended, dict):
            for field in EXTENDED_FIELDS:
                if data.get(field) in (None, "") and extended.get(field) not in (None, ""):
                    data[field] = extended[field]
        # Open-ended events occupy a single instant
        if data.get("end") in (None, ""):
            data["end"] = data.get("start")
        return data

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> datetime:
        return parse_datetime(value)

    @field_validator("purpose", mode="before")
    @classmethod
    def coerce_purpose(cls, value: Any) -> Purpose:
        return Purpose.coerce(value)

    @field_validator("cost", mode="before")
    @classmethod
    def coerce_cost(cls, value: Any) -> float:
        if isinstance(value, bool):
            return 0.0
        try:
            cost = float(value)
        except (TypeError, ValueError, OverflowError):
            return 0.0
        # NaN, infinities and amounts no sum can hold count as unparsable
        if not math.isfinite(cost) or abs(cost) > MAX_COST:
            return 0.0
        return cost

    @field_validator("resource_id", "equipment", "technician", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Event"]:
        """
        Build an Event from a stored record.

        Returns None for records whose dates do not parse; computations
        skip those.
        """
        try:
            return cls.model_validate(record)
        except ValidationError as e:
            logger.debug(f"Skipping unreadable event {record.get('id')!r}: {e.error_count()} errors")
            return None

    @property
    def duration_hours(self) -> float:
        return max(0.0, hours_between(self.start, self.end))

    def belongs_to(self, resource_id: str, resource_title: Optional[str] = None) -> bool:
        """An event belongs to a resource by id, falling back to the equipment name."""
        if self.resource_id is not None and self.resource_id == resource_id:
            return True
        return resource_title is not None and self.equipment == resource_title

    def overlaps(self, window_start: datetime, window_end: datetime) -> bool:
        return self.start <= window_end and self.end >= window_start

    def covers(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def parse_events(records: Sequence[Dict[str, Any]]) -> List[Event]:
    """Typed events, skipping records whose dates do not parse."""
    events = []
    for record in records:
        event = Event.from_record(record)
        if event is not None:
            events.append(event)
    return events
