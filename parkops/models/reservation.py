"""Reservation domain model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from parkops.time_utils import utcnow


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    # Reserved for payment-first flows; creation yields CONFIRMED directly.
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


PAYABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED})


class Reservation(BaseModel):
    """A booked window at a location."""

    id: int
    location_id: int
    customer_user_id: str
    vehicle_number: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    duration_minutes: int = Field(ge=1, description="Frozen at creation")
    price_paise: int = Field(ge=0, description="Frozen at creation")
    status: ReservationStatus = Field(default=ReservationStatus.CONFIRMED)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_payable(self) -> bool:
        return self.status in PAYABLE_STATUSES

    def has_ended(self, now: datetime) -> bool:
        """Check whether the booked window has elapsed at ``now``."""
        return now >= self.end_time


class ReservationInput(BaseModel):
    """Input model for reservation creation."""

    location_id: int = Field(gt=0)
    customer_user_id: str = Field(min_length=1)
    vehicle_number: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    duration_minutes: int = Field(ge=1)
    price_paise: int = Field(ge=0)
