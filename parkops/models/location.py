"""Parking location model (owned by the location directory)."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from parkops.time_utils import utcnow


class PricingMode(str, Enum):
    """Pricing policy configured on a location."""

    HOURLY = "hourly"
    SLAB = "slab"
    DAILY = "daily"


class Slab(BaseModel):
    """Flat price for stays whose duration falls within a minute range."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_minutes: int = Field(ge=0, alias="minMinutes")
    max_minutes: int = Field(ge=0, alias="maxMinutes")
    price_paise: int = Field(ge=0, alias="pricePaise")

    @model_validator(mode="after")
    def validate_range(self) -> "Slab":
        """Ensure min_minutes <= max_minutes."""
        if self.max_minutes < self.min_minutes:
            raise ValueError("maxMinutes must not be less than minMinutes")
        return self

    def covers(self, duration_minutes: int) -> bool:
        return self.min_minutes <= duration_minutes <= self.max_minutes


def parse_slabs(raw: Any) -> Optional[list[Slab]]:
    """Parse the stored slab table (JSON text or decoded list) into slabs.

    Order is preserved; the first covering slab wins when pricing.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        raise ValueError("slab table must be a list of ranges")
    return [Slab.model_validate(entry) for entry in raw]


class Location(BaseModel):
    """Location record as seen by the reservation core."""

    id: int
    owner_user_id: str
    title: str = ""
    total_slots: int = Field(ge=1, description="Physical slots at the location")
    available_slots: int = Field(ge=0, description="Coarse free-slot counter")
    pricing_mode: PricingMode = Field(default=PricingMode.HOURLY)
    base_price_per_hour_paise: int = Field(ge=0)
    slabs: Optional[list[Slab]] = None
    approved: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("available_slots")
    @classmethod
    def validate_available(cls, v: int, info) -> int:
        """Ensure available_slots <= total_slots."""
        values = info.data
        if "total_slots" in values and v > values["total_slots"]:
            raise ValueError("available_slots cannot exceed total_slots")
        return v
