"""Services shared by the operation handlers."""

from dataclasses import dataclass
from typing import Callable

from parkops.config.settings import Settings
from parkops.services.payment_flow import PaymentFlowService
from parkops.services.pricing import PricingCalculator
from parkops.services.reservation_flow import ReservationFlowService
from parkops.storage.unit_of_work import UnitOfWork


@dataclass
class AppContext:
    """Wired services, built once at startup by ``parkops.app``."""

    settings: Settings
    uow_factory: Callable[[], UnitOfWork]
    pricing: PricingCalculator
    reservation_flow: ReservationFlowService
    payment_flow: PaymentFlowService
