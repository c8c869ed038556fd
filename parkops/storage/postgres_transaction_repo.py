"""PostgreSQL repository for payment Transaction entities."""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from parkops.logging import get_logger
from parkops.models.transaction import Transaction, TransactionInput, TransactionStatus
from parkops.storage.db_models import TransactionTable
from parkops.storage.repository_base import RepositoryBase
from parkops.time_utils import utcnow

logger = get_logger(__name__)


class PostgresTransactionRepository(RepositoryBase[Transaction, TransactionInput]):
    """Transaction repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: int) -> Optional[Transaction]:
        """Retrieve transaction by ID."""
        stmt = select(TransactionTable).where(TransactionTable.id == id)
        result = await self.session.execute(stmt)
        db_transaction = result.scalar_one_or_none()

        if not db_transaction:
            return None

        return self._to_domain_model(db_transaction)

    async def create(self, entity: TransactionInput) -> Transaction:
        """Insert an initiated transaction. Committed by the unit of work."""
        db_transaction = TransactionTable(
            reservation_id=entity.reservation_id,
            amount_paise=entity.amount_paise,
            payment_method=entity.payment_method,
            upi_vpa=entity.upi_vpa,
            qr_payload=entity.qr_payload,
            status=TransactionStatus.INITIATED,
        )

        self.session.add(db_transaction)
        await self.session.flush()

        logger.info(
            "transaction_inserted",
            transaction_id=db_transaction.id,
            reservation_id=entity.reservation_id,
            payment_method=entity.payment_method.value,
        )

        return self._to_domain_model(db_transaction)

    async def mark_paid(self, id: int) -> Optional[Transaction]:
        """Settle an initiated transaction.

        Returns:
            Paid transaction, or None if it was not in INITIATED status
        """
        stmt = (
            update(TransactionTable)
            .where(TransactionTable.id == id)
            .where(TransactionTable.status == TransactionStatus.INITIATED)
            .values(status=TransactionStatus.PAID, updated_at=utcnow())
            .returning(TransactionTable)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_transaction = result.scalar_one_or_none()

        if not db_transaction:
            return None

        logger.info("transaction_marked_paid", transaction_id=id)

        return self._to_domain_model(db_transaction)

    def _to_domain_model(self, db_transaction: TransactionTable) -> Transaction:
        """Convert database model to domain model."""
        return Transaction(
            id=db_transaction.id,
            reservation_id=db_transaction.reservation_id,
            amount_paise=db_transaction.amount_paise,
            payment_method=db_transaction.payment_method,
            status=db_transaction.status,
            upi_vpa=db_transaction.upi_vpa,
            qr_payload=db_transaction.qr_payload,
            created_at=db_transaction.created_at,
            updated_at=db_transaction.updated_at,
        )
