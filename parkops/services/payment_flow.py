"""Payment coordination for reservations.

Creates payment intents and settles them. Settlement marks the transaction
paid and advances the reservation in the same unit of work, so a payment is
never half-applied.
"""

from datetime import datetime
from typing import Callable

from parkops.errors import (
    AuthorizationError,
    CapacityError,
    InvalidStatusError,
    NotFoundError,
)
from parkops.logging import get_logger
from parkops.logging.audit import AuditLogger
from parkops.models.identity import Identity
from parkops.models.requests import PaymentRequest
from parkops.models.reservation import Reservation, ReservationStatus, TERMINAL_STATUSES
from parkops.models.transaction import PaymentMethod, Transaction, TransactionInput, TransactionStatus
from parkops.security.permissions import Permission, PermissionChecker
from parkops.services.upi import UpiPaymentConfig
from parkops.storage.unit_of_work import UnitOfWork
from parkops.time_utils import utcnow

logger = get_logger(__name__)


class PaymentFlowService:
    """Orchestrates payment initiation and settlement."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        upi_config: UpiPaymentConfig,
        permissions: PermissionChecker | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize payment flow service.

        Args:
            uow_factory: Returns a fresh unit of work per operation
            upi_config: Merchant details for UPI payment links
            permissions: Permission checker
            clock: Source of the current UTC time
        """
        self.uow_factory = uow_factory
        self.upi_config = upi_config
        self.permissions = permissions or PermissionChecker()
        self.clock = clock

    async def initiate_payment(
        self,
        identity: Identity,
        request: PaymentRequest,
    ) -> Transaction:
        """
        Create an initiated transaction for the caller's reservation.

        Raises:
            NotFoundError: reservation missing or not the caller's
            InvalidStatusError: reservation is not payable
        """
        async with self.uow_factory() as uow:
            reservation = await uow.reservations.get_by_id(request.reservation_id)

            # Other customers' reservations are reported as missing
            if reservation is None or not self.permissions.can_initiate_payment(
                identity, reservation
            ):
                raise NotFoundError("Reservation not found", code="RESERVATION_NOT_FOUND")

            if not reservation.is_payable:
                raise InvalidStatusError(
                    "Reservation not eligible for payment",
                    code="INVALID_RESERVATION_STATUS",
                )

            qr_payload = None
            if request.method == PaymentMethod.UPI:
                qr_payload = self.upi_config.build_qr_payload(
                    reservation.price_paise, reservation.id
                )

            transaction = await uow.transactions.create(
                TransactionInput(
                    reservation_id=reservation.id,
                    amount_paise=reservation.price_paise,
                    payment_method=request.method,
                    upi_vpa=request.upi_vpa,
                    qr_payload=qr_payload,
                )
            )

        AuditLogger.log_payment_initiated(
            actor_id=identity.user_id,
            transaction_id=transaction.id,
            reservation_id=reservation.id,
            amount_paise=transaction.amount_paise,
            payment_method=transaction.payment_method.value,
        )

        return transaction

    async def mark_paid(self, identity: Identity, transaction_id: int) -> Transaction:
        """
        Settle a transaction exactly once.

        The reservation becomes COMPLETED when its window has already ended,
        otherwise CONFIRMED. Terminal reservations are left as they are.

        Raises:
            NotFoundError: transaction or reservation missing
            AuthorizationError: caller is neither the customer nor an admin
            InvalidStatusError: transaction already settled
        """
        async with self.uow_factory() as uow:
            transaction = await uow.transactions.get_by_id(transaction_id)
            if transaction is None:
                raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")

            reservation = await uow.reservations.get_by_id(transaction.reservation_id)
            if reservation is None:
                raise NotFoundError("Reservation not found", code="RESERVATION_NOT_FOUND")

            if not self.permissions.can_mark_paid(identity, reservation):
                AuditLogger.log_permission_denied(
                    actor_id=identity.user_id,
                    resource_type="transaction",
                    resource_id=transaction_id,
                    attempted_action=Permission.MARK_PAID.value,
                )
                raise AuthorizationError(
                    "Permission denied - not reservation customer or admin"
                )

            if transaction.status != TransactionStatus.INITIATED:
                raise InvalidStatusError(
                    "Transaction cannot be marked as paid - invalid status"
                )

            target = (
                ReservationStatus.COMPLETED
                if reservation.has_ended(self.clock())
                else ReservationStatus.CONFIRMED
            )
            moves_reservation = (
                reservation.status not in TERMINAL_STATUSES and reservation.status != target
            )

            # Lock the location before touching rows, same order as booking
            if moves_reservation:
                await uow.locations.get_for_update(reservation.location_id)

            paid = await uow.transactions.mark_paid(transaction_id)
            if paid is None:
                raise InvalidStatusError(
                    "Transaction cannot be marked as paid - invalid status"
                )

            settled_status = reservation.status
            if moves_reservation:
                settled_status = await self._advance_reservation(uow, reservation, target)
            else:
                logger.info(
                    "settlement_reservation_unchanged",
                    reservation_id=reservation.id,
                    status=reservation.status.value,
                )

        AuditLogger.log_payment_settled(
            actor_id=identity.user_id,
            transaction_id=transaction_id,
            reservation_id=reservation.id,
            reservation_status=settled_status.value,
        )

        return paid

    async def _advance_reservation(
        self,
        uow: UnitOfWork,
        reservation: Reservation,
        target: ReservationStatus,
    ) -> ReservationStatus:
        """Apply the settlement status, keeping the slot counter in step."""
        updated = await uow.reservations.transition_status(
            reservation.id, [reservation.status], target
        )
        if updated is None:
            raise InvalidStatusError(
                "Reservation changed during settlement",
                code="RESERVATION_STATUS_CHANGED",
            )

        if reservation.status == ReservationStatus.CONFIRMED:
            # confirmed -> completed hands the slot back
            await uow.locations.increment_available_slots(reservation.location_id)
        elif target == ReservationStatus.CONFIRMED:
            # pending -> confirmed starts occupying a slot
            if await uow.locations.decrement_available_slots(reservation.location_id) is None:
                raise CapacityError("No available slots")

        return updated.status
