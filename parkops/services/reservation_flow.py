"""Reservation lifecycle service with atomic slot accounting.

Creation, completion and cancellation each run inside one unit of work so
the reservation row and the location's ``available_slots`` counter always
move together.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Optional

from parkops.errors import (
    AuthorizationError,
    CapacityError,
    InvalidStatusError,
    LocationBusyError,
    NotApprovedError,
    NotFoundError,
    ParkOpsError,
)
from parkops.logging import get_logger
from parkops.logging.audit import AuditLogger
from parkops.models.identity import Identity
from parkops.models.requests import BookingRequest
from parkops.models.reservation import Reservation, ReservationInput, ReservationStatus
from parkops.security.permissions import Permission, PermissionChecker
from parkops.services.availability import AvailabilityChecker, TimeWindow
from parkops.services.pricing import PricingCalculator
from parkops.storage.redis_locks import RedisLockHelper
from parkops.storage.unit_of_work import UnitOfWork
from parkops.time_utils import utcnow

logger = get_logger(__name__)


class ReservationFlowService:
    """Creates reservations and drives them through their lifecycle."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        pricing: PricingCalculator | None = None,
        availability: AvailabilityChecker | None = None,
        permissions: PermissionChecker | None = None,
        lock_helper: RedisLockHelper | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize reservation flow service.

        Args:
            uow_factory: Returns a fresh unit of work per operation
            pricing: Pricing calculator
            availability: Availability checker
            permissions: Permission checker
            lock_helper: Redis lock helper (optional; the row lock alone also serializes)
            clock: Source of the current UTC time
        """
        self.uow_factory = uow_factory
        self.pricing = pricing or PricingCalculator()
        self.availability = availability or AvailabilityChecker()
        self.permissions = permissions or PermissionChecker()
        self.lock_helper = lock_helper
        self.clock = clock

    @asynccontextmanager
    async def _location_lock(self, location_id: int) -> AsyncIterator[None]:
        if self.lock_helper is None:
            yield
            return

        async with self.lock_helper.acquire_location_lock(location_id) as acquired:
            if not acquired:
                raise LocationBusyError(
                    "Location is busy with another booking. Please try again."
                )
            yield

    def _rejected(self, identity: Identity, location_id: int, error: ParkOpsError) -> ParkOpsError:
        AuditLogger.log_booking_rejected(
            actor_id=identity.user_id,
            location_id=location_id,
            reason=error.code,
        )
        return error

    async def create_reservation(
        self,
        identity: Identity,
        request: BookingRequest,
    ) -> Reservation:
        """
        Book a window at a location.

        The location row stays locked from the fast-path check until the
        reservation insert and the slot decrement commit.

        Raises:
            NotFoundError: location does not exist
            NotApprovedError: location is not approved
            CapacityError: no free slot, or the window is fully booked
            LocationBusyError: location lock not acquired in time
        """
        location_id = request.location_id

        async with self._location_lock(location_id):
            async with self.uow_factory() as uow:
                location = await uow.locations.get_for_update(location_id)
                if location is None:
                    raise NotFoundError("Location not found", code="LOCATION_NOT_FOUND")

                if not location.approved:
                    raise self._rejected(
                        identity, location_id, NotApprovedError("Location not approved")
                    )

                if not self.availability.has_free_slot(location):
                    raise self._rejected(
                        identity, location_id, CapacityError("No available slots")
                    )

                quote = self.pricing.quote(location, request.start_time, request.end_time)

                window = TimeWindow(request.start_time, request.end_time)
                existing = await uow.reservations.list_confirmed_overlapping(
                    location_id, window.start, window.end
                )
                if not self.availability.is_available(location, window, existing):
                    raise self._rejected(
                        identity,
                        location_id,
                        CapacityError(
                            "No available slots for requested time slot",
                            code="SLOT_UNAVAILABLE",
                        ),
                    )

                reservation = await uow.reservations.create(
                    ReservationInput(
                        location_id=location_id,
                        customer_user_id=identity.user_id,
                        vehicle_number=request.vehicle_number,
                        start_time=request.start_time,
                        end_time=request.end_time,
                        duration_minutes=quote.duration_minutes,
                        price_paise=quote.price_paise,
                    )
                )

                remaining = await uow.locations.decrement_available_slots(location_id)
                if remaining is None:
                    raise self._rejected(
                        identity, location_id, CapacityError("No available slots")
                    )

        AuditLogger.log_reservation_created(
            actor_id=identity.user_id,
            reservation_id=reservation.id,
            location_id=location_id,
            price_paise=reservation.price_paise,
            available_slots=remaining,
        )

        return reservation

    async def complete_reservation(self, identity: Identity, reservation_id: int) -> Reservation:
        """Mark a confirmed reservation completed and return its slot."""
        return await self._close_reservation(
            identity, reservation_id, ReservationStatus.COMPLETED
        )

    async def cancel_reservation(self, identity: Identity, reservation_id: int) -> Reservation:
        """Cancel a confirmed reservation before its window ends and return its slot."""
        return await self._close_reservation(
            identity, reservation_id, ReservationStatus.CANCELLED
        )

    async def _close_reservation(
        self,
        identity: Identity,
        reservation_id: int,
        target: ReservationStatus,
    ) -> Reservation:
        cancelling = target == ReservationStatus.CANCELLED
        permission = (
            Permission.CANCEL_RESERVATION if cancelling else Permission.COMPLETE_RESERVATION
        )

        async with self.uow_factory() as uow:
            reservation = await uow.reservations.get_by_id(reservation_id)
            if reservation is None:
                raise NotFoundError("Reservation not found", code="RESERVATION_NOT_FOUND")

            location = await uow.locations.get_for_update(reservation.location_id)
            if location is None:
                raise NotFoundError("Location not found", code="LOCATION_NOT_FOUND")

            allowed = (
                self.permissions.can_cancel_reservation(identity, reservation, location)
                if cancelling
                else self.permissions.can_complete_reservation(identity, location)
            )
            if not allowed:
                AuditLogger.log_permission_denied(
                    actor_id=identity.user_id,
                    resource_type="reservation",
                    resource_id=reservation_id,
                    attempted_action=permission.value,
                )
                raise AuthorizationError("Permission denied")

            if reservation.status != ReservationStatus.CONFIRMED:
                raise InvalidStatusError(
                    f"Reservation must be confirmed to be {target.value}"
                )

            if cancelling and reservation.has_ended(self.clock()):
                raise InvalidStatusError(
                    "Cannot cancel a reservation after its window has ended",
                    code="WINDOW_ENDED",
                )

            updated = await uow.reservations.transition_status(
                reservation_id, [ReservationStatus.CONFIRMED], target
            )
            if updated is None:
                raise InvalidStatusError(
                    f"Reservation must be confirmed to be {target.value}"
                )

            available = await uow.locations.increment_available_slots(location.id)
            if available is None:
                # Counter already at capacity; the status change still stands.
                logger.warning(
                    "slot_counter_at_capacity",
                    location_id=location.id,
                    reservation_id=reservation_id,
                )

        AuditLogger.log_reservation_closed(
            actor_id=identity.user_id,
            reservation_id=reservation_id,
            location_id=location.id,
            cancelled=cancelling,
            available_slots=available,
        )

        return updated

    async def list_reservations(
        self,
        identity: Identity,
        as_owner: bool = False,
        status: Optional[ReservationStatus] = None,
    ) -> list[Reservation]:
        """
        List the caller's reservations, newest first.

        Args:
            identity: Caller
            as_owner: List reservations at locations the caller owns instead
            status: Optional status filter
        """
        if as_owner and not self.permissions.can_view_owner_reservations(identity):
            AuditLogger.log_permission_denied(
                actor_id=identity.user_id,
                resource_type="reservation",
                resource_id="*",
                attempted_action=Permission.VIEW_OWNER_RESERVATIONS.value,
            )
            raise AuthorizationError("Owner role required")

        async with self.uow_factory() as uow:
            if as_owner:
                return await uow.reservations.get_by_location_owner(identity.user_id, status)
            return await uow.reservations.get_by_customer(identity.user_id, status)

    async def get_availability(self, location_id: int) -> dict[str, Any]:
        """Current free-slot counter of an approved location."""
        async with self.uow_factory() as uow:
            location = await uow.locations.get_by_id(location_id)

        if location is None or not location.approved:
            raise NotFoundError(
                "Location not found or not approved", code="LOCATION_NOT_FOUND"
            )

        return {
            "available_slots": location.available_slots,
            "updated_at": location.updated_at,
        }
