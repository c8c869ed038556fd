"""Payment operations."""

from typing import Any, Mapping

from parkops.handlers import OperationResult, run_operation
from parkops.handlers.context import AppContext
from parkops.models.identity import Identity
from parkops.models.requests import PaymentRequest, parse_payload


async def initiate_payment(
    ctx: AppContext,
    identity: Identity,
    payload: Mapping[str, Any],
) -> OperationResult:
    """Create a payment intent for one of the caller's reservations."""

    async def run() -> dict[str, Any]:
        request = parse_payload(PaymentRequest, payload)
        transaction = await ctx.payment_flow.initiate_payment(identity, request)
        return transaction.model_dump(mode="json")

    return await run_operation("initiate_payment", run)


async def mark_transaction_paid(
    ctx: AppContext,
    identity: Identity,
    transaction_id: int,
) -> OperationResult:
    """Settle an initiated transaction."""

    async def run() -> dict[str, Any]:
        transaction = await ctx.payment_flow.mark_paid(identity, transaction_id)
        return transaction.model_dump(mode="json")

    return await run_operation("mark_transaction_paid", run)
