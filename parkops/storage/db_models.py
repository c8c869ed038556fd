"""SQLAlchemy database models.

Maps domain models to PostgreSQL tables.
"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from parkops.models.location import PricingMode
from parkops.models.reservation import ReservationStatus
from parkops.models.transaction import PaymentMethod, TransactionStatus
from parkops.time_utils import utcnow


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enum_values(enum_cls) -> list[str]:
    """Store enum values (lower-case) rather than member names."""
    return [member.value for member in enum_cls]


class LocationTable(Base):
    """Parking location table (owned by the location directory)."""

    __tablename__ = "parking_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_user_id = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=False, default="")
    total_slots = Column(Integer, nullable=False, default=1)
    available_slots = Column(Integer, nullable=False, default=1)
    pricing_mode = Column(
        Enum(PricingMode, name="pricingmode", values_callable=_enum_values),
        nullable=False,
        default=PricingMode.HOURLY,
    )
    base_price_per_hour_paise = Column(Integer, nullable=False, default=1000)
    slab_json = Column(JSON, nullable=True)
    approved = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    reservations = relationship("ReservationTable", back_populates="location")

    __table_args__ = (
        CheckConstraint("total_slots >= 1", name="check_positive_total_slots"),
        CheckConstraint("available_slots >= 0", name="check_nonnegative_available_slots"),
        CheckConstraint("available_slots <= total_slots", name="check_available_le_total"),
        CheckConstraint("base_price_per_hour_paise >= 0", name="check_nonnegative_base_price"),
    )


class ReservationTable(Base):
    """Reservation entity table."""

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location_id = Column(
        Integer, ForeignKey("parking_locations.id", ondelete="RESTRICT"), nullable=False
    )
    customer_user_id = Column(String(64), nullable=False)
    vehicle_number = Column(String(32), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price_paise = Column(BigInteger, nullable=False)
    status = Column(
        Enum(ReservationStatus, name="reservationstatus", values_callable=_enum_values),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    location = relationship("LocationTable", back_populates="reservations")
    transactions = relationship("TransactionTable", back_populates="reservation")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_time_range"),
        CheckConstraint("duration_minutes > 0", name="check_positive_duration"),
        CheckConstraint("price_paise >= 0", name="check_nonnegative_price"),
        Index("ix_reservations_location_status_window", location_id, status, start_time, end_time),
        Index("ix_reservations_customer_created", customer_user_id, created_at.desc()),
    )


class TransactionTable(Base):
    """Payment transaction table."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(
        Integer, ForeignKey("reservations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount_paise = Column(BigInteger, nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, name="paymentmethod", values_callable=_enum_values),
        nullable=False,
    )
    upi_vpa = Column(String(100), nullable=True)
    qr_payload = Column(Text, nullable=True)
    status = Column(
        Enum(TransactionStatus, name="transactionstatus", values_callable=_enum_values),
        nullable=False,
        default=TransactionStatus.INITIATED,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    reservation = relationship("ReservationTable", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount_paise >= 0", name="check_nonnegative_amount"),
    )
