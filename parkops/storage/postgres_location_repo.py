"""PostgreSQL adapter for Location records.

Locations are owned by the location directory; the reservation core reads
them and moves the ``available_slots`` counter.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from parkops.logging import get_logger
from parkops.models.location import Location, parse_slabs
from parkops.storage.db_models import LocationTable
from parkops.time_utils import utcnow

logger = get_logger(__name__)


class PostgresLocationRepository:
    """Location repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: int) -> Optional[Location]:
        """Retrieve location by ID."""
        stmt = select(LocationTable).where(LocationTable.id == id)
        result = await self.session.execute(stmt)
        db_location = result.scalar_one_or_none()

        if not db_location:
            return None

        return self._to_domain_model(db_location)

    async def get_for_update(self, id: int) -> Optional[Location]:
        """Retrieve location and hold its row lock until the transaction ends."""
        stmt = select(LocationTable).where(LocationTable.id == id).with_for_update()
        result = await self.session.execute(stmt)
        db_location = result.scalar_one_or_none()

        if not db_location:
            return None

        return self._to_domain_model(db_location)

    async def decrement_available_slots(self, id: int) -> Optional[int]:
        """Take one slot if any remain.

        Returns:
            Remaining slot count, or None if the counter was already zero
        """
        stmt = (
            update(LocationTable)
            .where(LocationTable.id == id)
            .where(LocationTable.available_slots > 0)
            .values(
                available_slots=LocationTable.available_slots - 1,
                updated_at=utcnow(),
            )
            .returning(LocationTable.available_slots)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        remaining = result.scalar_one_or_none()

        if remaining is None:
            logger.warning("slot_decrement_refused", location_id=id)
            return None

        logger.info("slot_taken", location_id=id, available_slots=remaining)
        return remaining

    async def increment_available_slots(self, id: int) -> Optional[int]:
        """Return one slot without exceeding total_slots.

        Returns:
            New slot count, or None if the counter was already at capacity
        """
        stmt = (
            update(LocationTable)
            .where(LocationTable.id == id)
            .where(LocationTable.available_slots < LocationTable.total_slots)
            .values(
                available_slots=LocationTable.available_slots + 1,
                updated_at=utcnow(),
            )
            .returning(LocationTable.available_slots)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        available = result.scalar_one_or_none()

        if available is None:
            logger.warning("slot_increment_refused", location_id=id)
            return None

        logger.info("slot_returned", location_id=id, available_slots=available)
        return available

    def _to_domain_model(self, db_location: LocationTable) -> Location:
        """Convert database model to domain model."""
        return Location(
            id=db_location.id,
            owner_user_id=db_location.owner_user_id,
            title=db_location.title,
            total_slots=db_location.total_slots,
            available_slots=db_location.available_slots,
            pricing_mode=db_location.pricing_mode,
            base_price_per_hour_paise=db_location.base_price_per_hour_paise,
            slabs=parse_slabs(db_location.slab_json),
            approved=db_location.approved,
            created_at=db_location.created_at,
            updated_at=db_location.updated_at,
        )
