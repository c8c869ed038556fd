"""Request models for the reservation core operations.

Payloads arrive from the web layer as plain mappings. ``parse_payload``
validates them and converts pydantic failures into ``ValidationError`` with
a field-specific code.
"""

from datetime import datetime, timedelta
from typing import Any, ClassVar, Mapping, Optional, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from parkops.errors import ValidationError
from parkops.models.transaction import UPI_VPA_PATTERN, PaymentMethod
from parkops.time_utils import ensure_utc

# Caller identity comes from the session, never from the body.
IDENTITY_FIELDS = frozenset(
    {
        "customerUserId",
        "customer_user_id",
        "userId",
        "user_id",
        "authorId",
        "ownerUserId",
        "owner_user_id",
    }
)

MAX_WINDOW = timedelta(days=366)

RequestT = TypeVar("RequestT", bound="OperationRequest")


class OperationRequest(BaseModel):
    """Base for operation payloads."""

    # field name -> error code; "" is used for model-level checks
    error_codes: ClassVar[dict[str, str]] = {}
    rejects_identity_fields: ClassVar[bool] = True


class TimeWindowRequest(OperationRequest):
    """Location plus a requested [start, end) window."""

    error_codes: ClassVar[dict[str, str]] = {
        "location_id": "INVALID_LOCATION_ID",
        "start_time": "INVALID_START_TIME",
        "end_time": "INVALID_END_TIME",
        "": "INVALID_TIME_RANGE",
    }

    location_id: int = Field(gt=0)
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_time_range(self) -> "TimeWindowRequest":
        """Ensure start_time < end_time and the window is bounded."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.end_time - self.start_time > MAX_WINDOW:
            raise ValueError("time window cannot exceed 366 days")
        return self


class PriceQuoteRequest(TimeWindowRequest):
    """Payload for a price quote."""

    rejects_identity_fields: ClassVar[bool] = False


class BookingRequest(TimeWindowRequest):
    """Payload for reservation creation."""

    error_codes: ClassVar[dict[str, str]] = {
        **TimeWindowRequest.error_codes,
        "vehicle_number": "INVALID_VEHICLE_NUMBER",
    }

    vehicle_number: str = Field(min_length=1, max_length=32)

    @field_validator("vehicle_number", mode="before")
    @classmethod
    def strip_vehicle_number(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


class PaymentRequest(OperationRequest):
    """Payload for payment initiation."""

    error_codes: ClassVar[dict[str, str]] = {
        "reservation_id": "INVALID_RESERVATION_ID",
        "method": "INVALID_PAYMENT_METHOD",
        "upi_vpa": "INVALID_UPI_VPA",
    }

    reservation_id: int = Field(gt=0)
    method: PaymentMethod
    upi_vpa: Optional[str] = Field(default=None, pattern=UPI_VPA_PATTERN)

    @field_validator("upi_vpa", mode="before")
    @classmethod
    def blank_vpa_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


def parse_payload(model: type[RequestT], payload: Mapping[str, Any]) -> RequestT:
    """Validate a raw payload against ``model``.

    Raises:
        ValidationError: with the code of the first failing field
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be an object", code="INVALID_PAYLOAD")

    if model.rejects_identity_fields:
        smuggled = sorted(IDENTITY_FIELDS.intersection(payload.keys()))
        if smuggled:
            raise ValidationError(
                "User ID cannot be provided in request body",
                code="USER_ID_NOT_ALLOWED",
            )

    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first["loc"] else ""
        code = model.error_codes.get(field, "VALIDATION_ERROR")
        message = f"{field}: {first['msg']}" if field else first["msg"]
        raise ValidationError(message, code=code) from e
