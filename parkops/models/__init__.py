"""Models package - Pydantic domain models."""

from .identity import Identity, Role
from .location import Location, PricingMode, Slab
from .requests import BookingRequest, PaymentRequest, PriceQuoteRequest
from .reservation import Reservation, ReservationInput, ReservationStatus
from .transaction import PaymentMethod, Transaction, TransactionInput, TransactionStatus

__all__ = [
    "BookingRequest",
    "Identity",
    "Location",
    "PaymentMethod",
    "PaymentRequest",
    "PriceQuoteRequest",
    "PricingMode",
    "Reservation",
    "ReservationInput",
    "ReservationStatus",
    "Role",
    "Slab",
    "Transaction",
    "TransactionInput",
    "TransactionStatus",
]
