"""Pricing calculator.

Pure quote of a time window at a location. No I/O, so it is safe to call for
previews as well as at booking time.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from parkops.errors import NotApprovedError, NotFoundError, ValidationError
from parkops.models.location import Location, PricingMode

MINUTES_PER_HOUR = 60


@dataclass(frozen=True)
class PriceQuote:
    """Deterministic price for a window."""

    duration_minutes: int
    price_paise: int
    mode: PricingMode
    applied_rate: int
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the quote response shape."""
        return {
            "duration_minutes": self.duration_minutes,
            "price_paise": self.price_paise,
            "pricing_details": {
                "mode": self.mode.value,
                "applied_rate": self.applied_rate,
                "calculation_method": self.explanation,
            },
        }


def duration_minutes(start_time: datetime, end_time: datetime) -> int:
    """Elapsed minutes, fractional minutes rounded up."""
    seconds = (end_time - start_time).total_seconds()
    return math.ceil(seconds / 60)


def billable_hours(minutes: int) -> int:
    """Hours billed for a stay; a started hour bills in full."""
    return math.ceil(minutes / MINUTES_PER_HOUR)


class PricingCalculator:
    """Computes price quotes from a location's pricing configuration."""

    def quote(
        self,
        location: Optional[Location],
        start_time: datetime,
        end_time: datetime,
    ) -> PriceQuote:
        """
        Price the window [start_time, end_time) at a location.

        Args:
            location: Location record, or None when the lookup found nothing
            start_time: Window start
            end_time: Window end (must be after start_time)

        Returns:
            PriceQuote with duration, price and the rule that fired

        Raises:
            NotFoundError: location is missing
            NotApprovedError: location is not approved
            ValidationError: window is empty or inverted
        """
        if location is None:
            raise NotFoundError("Location not found", code="LOCATION_NOT_FOUND")
        if not location.approved:
            raise NotApprovedError("Location not approved")
        if end_time <= start_time:
            raise ValidationError(
                "end_time must be after start_time", code="INVALID_TIME_RANGE"
            )

        minutes = duration_minutes(start_time, end_time)

        if location.pricing_mode == PricingMode.SLAB and location.slabs:
            slab = next((s for s in location.slabs if s.covers(minutes)), None)
            if slab is not None:
                return PriceQuote(
                    duration_minutes=minutes,
                    price_paise=slab.price_paise,
                    mode=PricingMode.SLAB,
                    applied_rate=slab.price_paise,
                    explanation=(
                        f"Slab pricing: {slab.min_minutes}-{slab.max_minutes} "
                        f"minutes = {slab.price_paise} paise"
                    ),
                )
            return self._hourly(location, minutes, prefix="No matching slab found, fallback: ")

        # hourly, daily and slab without a table all bill per started hour
        return self._hourly(location, minutes)

    def _hourly(self, location: Location, minutes: int, prefix: str = "") -> PriceQuote:
        hours = billable_hours(minutes)
        rate = location.base_price_per_hour_paise
        return PriceQuote(
            duration_minutes=minutes,
            price_paise=hours * rate,
            mode=PricingMode.HOURLY,
            applied_rate=rate,
            explanation=f"{prefix}{hours} hour(s) x {rate} paise/hour",
        )
