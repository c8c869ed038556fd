"""Application startup: wires storage, locks and services."""

import asyncio

from parkops.config import Settings, load_settings
from parkops.handlers.context import AppContext
from parkops.handlers.system.health import start_health_server
from parkops.logging import get_logger, setup_logging
from parkops.security.permissions import PermissionChecker
from parkops.services.availability import AvailabilityChecker
from parkops.services.payment_flow import PaymentFlowService
from parkops.services.pricing import PricingCalculator
from parkops.services.reservation_flow import ReservationFlowService
from parkops.services.upi import UpiPaymentConfig
from parkops.storage.database import Database
from parkops.storage.redis_locks import RedisLockHelper

_app_context: AppContext | None = None


def build_context(
    settings: Settings,
    db: Database,
    redis_locks: RedisLockHelper | None,
) -> AppContext:
    """Assemble the services used by the operation handlers."""
    pricing = PricingCalculator()
    permissions = PermissionChecker()

    reservation_flow = ReservationFlowService(
        db.unit_of_work,
        pricing=pricing,
        availability=AvailabilityChecker(),
        permissions=permissions,
        lock_helper=redis_locks,
    )
    payment_flow = PaymentFlowService(
        db.unit_of_work,
        UpiPaymentConfig.from_settings(settings),
        permissions=permissions,
    )

    return AppContext(
        settings=settings,
        uow_factory=db.unit_of_work,
        pricing=pricing,
        reservation_flow=reservation_flow,
        payment_flow=payment_flow,
    )


async def main() -> None:
    """Start the reservation core and serve the health endpoint until stopped."""
    global _app_context

    settings = load_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)

    logger.info(
        "starting_parkops",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    db = Database(settings)
    await db.connect()

    redis_locks = RedisLockHelper(
        settings.redis_url,
        ttl_seconds=settings.redis_lock_ttl_seconds,
        wait_seconds=settings.redis_lock_wait_seconds,
    )
    await redis_locks.connect()

    _app_context = build_context(settings, db, redis_locks)

    loop = asyncio.get_running_loop()
    health_server = start_health_server(
        host=settings.health_host,
        port=settings.health_port,
        db=db,
        redis_url=settings.redis_url,
        loop=loop,
    )
    server_task = loop.run_in_executor(None, health_server.serve_forever)

    logger.info("parkops_ready")

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        logger.info("shutting_down")
    finally:
        health_server.shutdown()
        await server_task
        health_server.server_close()
        await redis_locks.disconnect()
        await db.disconnect()
        _app_context = None


def get_app_context() -> AppContext:
    """Services wired by a running ``main()``."""
    if _app_context is None:
        raise RuntimeError("Application not started. Run main() first.")
    return _app_context
