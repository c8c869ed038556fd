"""Reservation operations: quoting, booking, closing, listing."""

from typing import Any, Mapping, Optional

from parkops.errors import ValidationError
from parkops.handlers import OperationResult, run_operation
from parkops.handlers.context import AppContext
from parkops.models.identity import Identity
from parkops.models.requests import BookingRequest, PriceQuoteRequest, parse_payload
from parkops.models.reservation import ReservationStatus
from parkops.time_utils import to_utc_z


def _parse_status(raw: Optional[str]) -> Optional[ReservationStatus]:
    if raw is None or raw == "":
        return None
    try:
        return ReservationStatus(raw)
    except ValueError:
        raise ValidationError(f"Unknown status: {raw}", code="INVALID_STATUS_FILTER") from None


async def quote_price(ctx: AppContext, payload: Mapping[str, Any]) -> OperationResult:
    """Price a window at a location without booking it."""

    async def run() -> dict[str, Any]:
        request = parse_payload(PriceQuoteRequest, payload)
        async with ctx.uow_factory() as uow:
            location = await uow.locations.get_by_id(request.location_id)
        quote = ctx.pricing.quote(location, request.start_time, request.end_time)
        return quote.to_dict()

    return await run_operation("quote_price", run)


async def create_reservation(
    ctx: AppContext,
    identity: Identity,
    payload: Mapping[str, Any],
) -> OperationResult:
    """Book a window for the caller."""

    async def run() -> dict[str, Any]:
        request = parse_payload(BookingRequest, payload)
        reservation = await ctx.reservation_flow.create_reservation(identity, request)
        return reservation.model_dump(mode="json")

    return await run_operation("create_reservation", run)


async def complete_reservation(
    ctx: AppContext,
    identity: Identity,
    reservation_id: int,
) -> OperationResult:
    """Close a confirmed reservation as completed."""

    async def run() -> dict[str, Any]:
        reservation = await ctx.reservation_flow.complete_reservation(identity, reservation_id)
        return reservation.model_dump(mode="json")

    return await run_operation("complete_reservation", run)


async def cancel_reservation(
    ctx: AppContext,
    identity: Identity,
    reservation_id: int,
) -> OperationResult:
    """Cancel a confirmed reservation."""

    async def run() -> dict[str, Any]:
        reservation = await ctx.reservation_flow.cancel_reservation(identity, reservation_id)
        return reservation.model_dump(mode="json")

    return await run_operation("cancel_reservation", run)


async def list_reservations(
    ctx: AppContext,
    identity: Identity,
    as_owner: bool = False,
    status: Optional[str] = None,
) -> OperationResult:
    """List the caller's reservations, or those at the caller's locations."""

    async def run() -> list[dict[str, Any]]:
        reservations = await ctx.reservation_flow.list_reservations(
            identity, as_owner=as_owner, status=_parse_status(status)
        )
        return [r.model_dump(mode="json") for r in reservations]

    return await run_operation("list_reservations", run)


async def location_availability(ctx: AppContext, location_id: int) -> OperationResult:
    """Free-slot counter for a location."""

    async def run() -> dict[str, Any]:
        availability = await ctx.reservation_flow.get_availability(location_id)
        return {
            "available_slots": availability["available_slots"],
            "updated_at": to_utc_z(availability["updated_at"]),
        }

    return await run_operation("location_availability", run)
