"""Structured audit logging for reservation and payment actions.

Every slot movement and every settlement leaves an ``audit_event`` entry so
support can reconstruct what happened to a booking.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from parkops.logging import get_logger

logger = get_logger(__name__)


class AuditEventType(str, Enum):
    """Types of auditable events."""

    # Reservation lifecycle
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_COMPLETED = "reservation_completed"
    RESERVATION_CANCELLED = "reservation_cancelled"
    BOOKING_REJECTED = "booking_rejected"

    # Payments
    PAYMENT_INITIATED = "payment_initiated"
    PAYMENT_SETTLED = "payment_settled"

    # Security
    PERMISSION_DENIED = "permission_denied"


class AuditLogger:
    """Centralized audit logging service."""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        actor_id: str,
        resource_type: str,
        resource_id: int | str,
        action: str,
        success: bool = True,
        metadata: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Log an auditable event with structured context.

        Args:
            event_type: Type of audit event
            actor_id: User ID of the authenticated principal
            resource_type: Type of resource (location, reservation, transaction)
            resource_id: ID of the affected resource
            action: Human-readable action description
            success: Whether the action succeeded
            metadata: Additional context (prices, slot counts, etc.)
            error: Error code if action failed
        """
        audit_entry = {
            "event_type": event_type.value,
            "actor_id": actor_id,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "action": action,
            "success": success,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }

        if error:
            audit_entry["error"] = error

        logger.info(
            "audit_event",
            **audit_entry,
        )

    @staticmethod
    def log_reservation_created(
        actor_id: str,
        reservation_id: int,
        location_id: int,
        price_paise: int,
        available_slots: int,
    ) -> None:
        """Log a confirmed booking and the slot it consumed."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_CREATED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Reservation confirmed",
            metadata={
                "location_id": location_id,
                "price_paise": price_paise,
                "available_slots": available_slots,
            },
        )

    @staticmethod
    def log_reservation_closed(
        actor_id: str,
        reservation_id: int,
        location_id: int,
        cancelled: bool,
        available_slots: int | None,
    ) -> None:
        """Log completion or cancellation and the slot it returned."""
        event_type = (
            AuditEventType.RESERVATION_CANCELLED
            if cancelled
            else AuditEventType.RESERVATION_COMPLETED
        )
        AuditLogger.log_event(
            event_type=event_type,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action=f"Reservation {'cancelled' if cancelled else 'completed'}",
            metadata={
                "location_id": location_id,
                "available_slots": available_slots,
            },
        )

    @staticmethod
    def log_booking_rejected(
        actor_id: str,
        location_id: int,
        reason: str,
    ) -> None:
        """Log a booking refused for capacity or approval reasons."""
        AuditLogger.log_event(
            event_type=AuditEventType.BOOKING_REJECTED,
            actor_id=actor_id,
            resource_type="location",
            resource_id=location_id,
            action="Booking rejected",
            success=False,
            error=reason,
        )

    @staticmethod
    def log_payment_initiated(
        actor_id: str,
        transaction_id: int,
        reservation_id: int,
        amount_paise: int,
        payment_method: str,
    ) -> None:
        """Log creation of a payment intent."""
        AuditLogger.log_event(
            event_type=AuditEventType.PAYMENT_INITIATED,
            actor_id=actor_id,
            resource_type="transaction",
            resource_id=transaction_id,
            action="Payment initiated",
            metadata={
                "reservation_id": reservation_id,
                "amount_paise": amount_paise,
                "payment_method": payment_method,
            },
        )

    @staticmethod
    def log_payment_settled(
        actor_id: str,
        transaction_id: int,
        reservation_id: int,
        reservation_status: str,
    ) -> None:
        """Log settlement and the reservation status it produced."""
        AuditLogger.log_event(
            event_type=AuditEventType.PAYMENT_SETTLED,
            actor_id=actor_id,
            resource_type="transaction",
            resource_id=transaction_id,
            action="Payment settled",
            metadata={
                "reservation_id": reservation_id,
                "reservation_status": reservation_status,
            },
        )

    @staticmethod
    def log_permission_denied(
        actor_id: str,
        resource_type: str,
        resource_id: int | str,
        attempted_action: str,
    ) -> None:
        """Log unauthorized access attempts."""
        AuditLogger.log_event(
            event_type=AuditEventType.PERMISSION_DENIED,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=f"Permission denied: {attempted_action}",
            success=False,
            metadata={"attempted_action": attempted_action},
        )
