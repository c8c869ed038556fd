"""Permission checks for reservation and payment actions."""

from enum import Enum

from parkops.models.identity import Identity, Role
from parkops.models.location import Location
from parkops.models.reservation import Reservation


class Permission(str, Enum):
    """Permission types."""

    COMPLETE_RESERVATION = "complete_reservation"
    CANCEL_RESERVATION = "cancel_reservation"
    VIEW_OWNER_RESERVATIONS = "view_owner_reservations"
    INITIATE_PAYMENT = "initiate_payment"
    MARK_PAID = "mark_paid"


class PermissionChecker:
    """Check caller permissions for actions."""

    def is_location_owner(self, identity: Identity, location: Location) -> bool:
        """Check if caller owns the location."""
        return location.owner_user_id == identity.user_id

    def is_reservation_customer(self, identity: Identity, reservation: Reservation) -> bool:
        """Check if caller made the reservation."""
        return reservation.customer_user_id == identity.user_id

    def can_complete_reservation(self, identity: Identity, location: Location) -> bool:
        """Location owner or admin."""
        return identity.is_admin or self.is_location_owner(identity, location)

    def can_cancel_reservation(
        self, identity: Identity, reservation: Reservation, location: Location
    ) -> bool:
        """Booking customer, location owner or admin."""
        return (
            identity.is_admin
            or self.is_reservation_customer(identity, reservation)
            or self.is_location_owner(identity, location)
        )

    def can_view_owner_reservations(self, identity: Identity) -> bool:
        """Owner role required to list reservations across owned locations."""
        return identity.has_role(Role.OWNER)

    def can_initiate_payment(self, identity: Identity, reservation: Reservation) -> bool:
        """Only the booking customer pays for a reservation."""
        return self.is_reservation_customer(identity, reservation)

    def can_mark_paid(self, identity: Identity, reservation: Reservation) -> bool:
        """Booking customer or admin."""
        return identity.is_admin or self.is_reservation_customer(identity, reservation)
