"""Payment transaction domain model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from parkops.time_utils import utcnow

# name@provider, e.g. driver.one@okbank
UPI_VPA_PATTERN = r"^[a-zA-Z0-9.-]+@[a-zA-Z]+$"


class PaymentMethod(str, Enum):
    """Payment method options."""

    UPI = "upi"
    CASH = "cash"
    CARD = "card"


class TransactionStatus(str, Enum):
    """Payment transaction status."""

    INITIATED = "initiated"
    PAID = "paid"
    # Reserved; no current flow records failures.
    FAILED = "failed"


class Transaction(BaseModel):
    """Payment attempt for a reservation."""

    id: int
    reservation_id: int
    amount_paise: int = Field(ge=0)
    payment_method: PaymentMethod
    status: TransactionStatus = Field(default=TransactionStatus.INITIATED)
    upi_vpa: Optional[str] = Field(default=None, description="Payer handle")
    qr_payload: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TransactionInput(BaseModel):
    """Input model for transaction creation."""

    reservation_id: int = Field(gt=0)
    amount_paise: int = Field(ge=0)
    payment_method: PaymentMethod
    upi_vpa: Optional[str] = None
    qr_payload: Optional[str] = None
