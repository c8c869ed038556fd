"""Availability checker.

A location has ``total_slots`` physical slots. A window is acceptable when
fewer than ``total_slots`` confirmed reservations overlap it. Windows are
half-open: [10:00, 11:00) and [11:00, 12:00) do not overlap.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from parkops.models.location import Location
from parkops.models.reservation import Reservation, ReservationStatus


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and other.start < self.end


class AvailabilityChecker:
    """Decides whether a location can take another booking."""

    def has_free_slot(self, location: Location) -> bool:
        """Fast-path guard on the coarse counter."""
        return location.available_slots > 0

    def count_overlapping(
        self,
        window: TimeWindow,
        reservations: Iterable[Reservation],
    ) -> int:
        """Count confirmed reservations occupying any part of the window."""
        return sum(
            1
            for reservation in reservations
            if reservation.status == ReservationStatus.CONFIRMED
            and window.overlaps(TimeWindow(reservation.start_time, reservation.end_time))
        )

    def is_available(
        self,
        location: Location,
        window: TimeWindow,
        existing_reservations: Iterable[Reservation],
    ) -> bool:
        """Check the window against the location's capacity."""
        occupied = self.count_overlapping(window, existing_reservations)
        return occupied < location.total_slots
