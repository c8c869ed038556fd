"""Unit of work spanning the reservation core's repositories.

Everything done through one ``UnitOfWork`` commits together on a clean exit
or is rolled back together when the block raises.
"""

from types import TracebackType
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from parkops.logging import get_logger
from parkops.storage.postgres_location_repo import PostgresLocationRepository
from parkops.storage.postgres_reservation_repo import PostgresReservationRepository
from parkops.storage.postgres_transaction_repo import PostgresTransactionRepository

logger = get_logger(__name__)


class UnitOfWork:
    """One database transaction with repositories bound to it."""

    locations: PostgresLocationRepository
    reservations: PostgresReservationRepository
    transactions: PostgresTransactionRepository

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        self.locations = PostgresLocationRepository(self.session)
        self.reservations = PostgresReservationRepository(self.session)
        self.transactions = PostgresTransactionRepository(self.session)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self.session is None:
            raise RuntimeError("Unit of work not entered")

        try:
            if exc_type is None:
                try:
                    await self.session.commit()
                except Exception:
                    logger.error("unit_of_work_commit_failed", exc_info=True)
                    await self.session.rollback()
                    raise
            else:
                await self.session.rollback()
                logger.debug("unit_of_work_rolled_back", error=str(exc))
        finally:
            await self.session.close()
            self.session = None
