"""PostgreSQL repository for Reservation entities."""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from parkops.logging import get_logger
from parkops.models.reservation import Reservation, ReservationInput, ReservationStatus
from parkops.storage.db_models import LocationTable, ReservationTable
from parkops.storage.repository_base import RepositoryBase
from parkops.time_utils import utcnow

logger = get_logger(__name__)


class PostgresReservationRepository(RepositoryBase[Reservation, ReservationInput]):
    """Reservation repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: int) -> Optional[Reservation]:
        """Retrieve reservation by ID."""
        stmt = select(ReservationTable).where(ReservationTable.id == id)
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()

        if not db_reservation:
            return None

        return self._to_domain_model(db_reservation)

    async def create(self, entity: ReservationInput) -> Reservation:
        """Insert a confirmed reservation. Committed by the unit of work."""
        db_reservation = ReservationTable(
            location_id=entity.location_id,
            customer_user_id=entity.customer_user_id,
            vehicle_number=entity.vehicle_number,
            start_time=entity.start_time,
            end_time=entity.end_time,
            duration_minutes=entity.duration_minutes,
            price_paise=entity.price_paise,
            status=ReservationStatus.CONFIRMED,
        )

        self.session.add(db_reservation)
        await self.session.flush()

        logger.info(
            "reservation_inserted",
            reservation_id=db_reservation.id,
            location_id=entity.location_id,
            price_paise=entity.price_paise,
        )

        return self._to_domain_model(db_reservation)

    async def list_confirmed_overlapping(
        self,
        location_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Reservation]:
        """Confirmed reservations at a location overlapping [start_time, end_time)."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.location_id == location_id)
            .where(ReservationTable.status == ReservationStatus.CONFIRMED)
            .where(ReservationTable.start_time < end_time)
            .where(ReservationTable.end_time > start_time)
        )
        result = await self.session.execute(stmt)
        db_reservations = result.scalars().all()

        return [self._to_domain_model(db_res) for db_res in db_reservations]

    async def transition_status(
        self,
        id: int,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
    ) -> Optional[Reservation]:
        """Move a reservation to ``to_status`` only if it is in ``from_statuses``.

        Returns:
            Updated reservation, or None if the status guard did not match
        """
        stmt = (
            update(ReservationTable)
            .where(ReservationTable.id == id)
            .where(ReservationTable.status.in_(list(from_statuses)))
            .values(status=to_status, updated_at=utcnow())
            .returning(ReservationTable)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()

        if not db_reservation:
            return None

        logger.info(
            "reservation_status_updated",
            reservation_id=id,
            status=to_status.value,
        )

        return self._to_domain_model(db_reservation)

    async def get_by_customer(
        self,
        customer_user_id: str,
        status: Optional[ReservationStatus] = None,
        limit: int = 100,
    ) -> list[Reservation]:
        """Get reservations for a customer, newest first."""
        stmt = select(ReservationTable).where(
            ReservationTable.customer_user_id == customer_user_id
        )
        if status is not None:
            stmt = stmt.where(ReservationTable.status == status)
        stmt = stmt.order_by(ReservationTable.created_at.desc()).limit(limit)

        result = await self.session.execute(stmt)
        db_reservations = result.scalars().all()

        return [self._to_domain_model(db_res) for db_res in db_reservations]

    async def get_by_location_owner(
        self,
        owner_user_id: str,
        status: Optional[ReservationStatus] = None,
        limit: int = 100,
    ) -> list[Reservation]:
        """Get reservations at locations owned by a user, newest first."""
        stmt = (
            select(ReservationTable)
            .join(LocationTable, ReservationTable.location_id == LocationTable.id)
            .where(LocationTable.owner_user_id == owner_user_id)
        )
        if status is not None:
            stmt = stmt.where(ReservationTable.status == status)
        stmt = stmt.order_by(ReservationTable.created_at.desc()).limit(limit)

        result = await self.session.execute(stmt)
        db_reservations = result.scalars().all()

        return [self._to_domain_model(db_res) for db_res in db_reservations]

    def _to_domain_model(self, db_reservation: ReservationTable) -> Reservation:
        """Convert database model to domain model."""
        return Reservation(
            id=db_reservation.id,
            location_id=db_reservation.location_id,
            customer_user_id=db_reservation.customer_user_id,
            vehicle_number=db_reservation.vehicle_number,
            start_time=db_reservation.start_time,
            end_time=db_reservation.end_time,
            duration_minutes=db_reservation.duration_minutes,
            price_paise=db_reservation.price_paise,
            status=db_reservation.status,
            created_at=db_reservation.created_at,
            updated_at=db_reservation.updated_at,
        )
