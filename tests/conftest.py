"""Pytest configuration and shared fixtures."""

import copy
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from parkops.models.identity import Identity, Role
from parkops.models.location import Location, PricingMode
from parkops.models.reservation import Reservation, ReservationInput, ReservationStatus
from parkops.models.transaction import Transaction, TransactionInput, TransactionStatus
from parkops.time_utils import utcnow

T0 = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


class InMemoryStore:
    """Rows shared by every in-memory unit of work of one test."""

    def __init__(self):
        self.locations: dict[int, Location] = {}
        self.reservations: dict[int, Reservation] = {}
        self.transactions: dict[int, Transaction] = {}
        self.next_ids = {"reservation": 1, "transaction": 1}
        # repository method names that raise, to simulate storage failures
        self.fail_on: set[str] = set()

    def check_failure(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"storage failure in {operation}")

    def add_location(self, location: Location) -> Location:
        self.locations[location.id] = location.model_copy()
        return location

    def add_reservation(self, reservation: Reservation) -> Reservation:
        self.reservations[reservation.id] = reservation.model_copy()
        self.next_ids["reservation"] = max(self.next_ids["reservation"], reservation.id + 1)
        return reservation

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self.transactions[transaction.id] = transaction.model_copy()
        self.next_ids["transaction"] = max(self.next_ids["transaction"], transaction.id + 1)
        return transaction

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "locations": self.locations,
                "reservations": self.reservations,
                "transactions": self.transactions,
                "next_ids": self.next_ids,
            }
        )

    def restore(self, snapshot: dict) -> None:
        self.locations = snapshot["locations"]
        self.reservations = snapshot["reservations"]
        self.transactions = snapshot["transactions"]
        self.next_ids = snapshot["next_ids"]


class InMemoryLocationRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, location_id: int) -> Optional[Location]:
        location = self.store.locations.get(location_id)
        return location.model_copy() if location else None

    async def get_for_update(self, location_id: int) -> Optional[Location]:
        return await self.get_by_id(location_id)

    async def decrement_available_slots(self, location_id: int) -> Optional[int]:
        self.store.check_failure("decrement_available_slots")
        location = self.store.locations.get(location_id)
        if location is None or location.available_slots <= 0:
            return None
        location.available_slots -= 1
        location.updated_at = utcnow()
        return location.available_slots

    async def increment_available_slots(self, location_id: int) -> Optional[int]:
        self.store.check_failure("increment_available_slots")
        location = self.store.locations.get(location_id)
        if location is None or location.available_slots >= location.total_slots:
            return None
        location.available_slots += 1
        location.updated_at = utcnow()
        return location.available_slots


class InMemoryReservationRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        reservation = self.store.reservations.get(reservation_id)
        return reservation.model_copy() if reservation else None

    async def create(self, reservation_input: ReservationInput) -> Reservation:
        self.store.check_failure("create_reservation")
        reservation_id = self.store.next_ids["reservation"]
        self.store.next_ids["reservation"] += 1
        reservation = Reservation(
            id=reservation_id,
            status=ReservationStatus.CONFIRMED,
            **reservation_input.model_dump(),
        )
        self.store.reservations[reservation_id] = reservation
        return reservation.model_copy()

    async def list_confirmed_overlapping(
        self, location_id: int, start_time: datetime, end_time: datetime
    ) -> list[Reservation]:
        return [
            r.model_copy()
            for r in self.store.reservations.values()
            if r.location_id == location_id
            and r.status == ReservationStatus.CONFIRMED
            and r.start_time < end_time
            and r.end_time > start_time
        ]

    async def transition_status(
        self,
        reservation_id: int,
        from_statuses,
        to_status: ReservationStatus,
    ) -> Optional[Reservation]:
        self.store.check_failure("transition_status")
        reservation = self.store.reservations.get(reservation_id)
        if reservation is None or reservation.status not in list(from_statuses):
            return None
        reservation.status = to_status
        reservation.updated_at = utcnow()
        return reservation.model_copy()

    def _newest_first(self, rows, status, limit):
        if status is not None:
            rows = [r for r in rows if r.status == status]
        rows = sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)
        return [r.model_copy() for r in rows[:limit]]

    async def get_by_customer(
        self, customer_user_id: str, status=None, limit: int = 100
    ) -> list[Reservation]:
        rows = [
            r for r in self.store.reservations.values()
            if r.customer_user_id == customer_user_id
        ]
        return self._newest_first(rows, status, limit)

    async def get_by_location_owner(
        self, owner_user_id: str, status=None, limit: int = 100
    ) -> list[Reservation]:
        owned = {
            loc.id for loc in self.store.locations.values()
            if loc.owner_user_id == owner_user_id
        }
        rows = [r for r in self.store.reservations.values() if r.location_id in owned]
        return self._newest_first(rows, status, limit)


class InMemoryTransactionRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        transaction = self.store.transactions.get(transaction_id)
        return transaction.model_copy() if transaction else None

    async def create(self, transaction_input: TransactionInput) -> Transaction:
        transaction_id = self.store.next_ids["transaction"]
        self.store.next_ids["transaction"] += 1
        transaction = Transaction(
            id=transaction_id,
            status=TransactionStatus.INITIATED,
            **transaction_input.model_dump(),
        )
        self.store.transactions[transaction_id] = transaction
        return transaction.model_copy()

    async def mark_paid(self, transaction_id: int) -> Optional[Transaction]:
        self.store.check_failure("mark_paid")
        transaction = self.store.transactions.get(transaction_id)
        if transaction is None or transaction.status != TransactionStatus.INITIATED:
            return None
        transaction.status = TransactionStatus.PAID
        transaction.updated_at = utcnow()
        return transaction.model_copy()


class InMemoryUnitOfWork:
    """All-or-nothing over the shared store, like the SQLAlchemy unit of work."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.committed = False

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        self._snapshot = self.store.snapshot()
        self.locations = InMemoryLocationRepository(self.store)
        self.reservations = InMemoryReservationRepository(self.store)
        self.transactions = InMemoryTransactionRepository(self.store)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.store.restore(self._snapshot)
        else:
            self.committed = True


class FakeLockHelper:
    """Location lock stand-in; ``busy`` locations never become available."""

    def __init__(self):
        self.busy: set[int] = set()
        self.acquired: list[int] = []

    @asynccontextmanager
    async def acquire_location_lock(self, location_id: int):
        if location_id in self.busy:
            yield False
            return
        self.acquired.append(location_id)
        yield True


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def uow_factory(store):
    """Factory returning units of work over the shared store."""
    return lambda: InMemoryUnitOfWork(store)


@pytest.fixture
def lock_helper():
    return FakeLockHelper()


@pytest.fixture
def customer():
    return Identity(user_id="cust-1", roles=frozenset({Role.CUSTOMER}))


@pytest.fixture
def other_customer():
    return Identity(user_id="cust-2", roles=frozenset({Role.CUSTOMER}))


@pytest.fixture
def owner():
    return Identity(user_id="owner-1", roles=frozenset({Role.OWNER}))


@pytest.fixture
def admin():
    return Identity(user_id="admin-1", roles=frozenset({Role.ADMIN}))


def make_location(**overrides) -> Location:
    """Approved hourly location, 100 paise/hour, 2 slots."""
    data = {
        "id": 1,
        "owner_user_id": "owner-1",
        "title": "Station Road Lot",
        "total_slots": 2,
        "available_slots": 2,
        "pricing_mode": PricingMode.HOURLY,
        "base_price_per_hour_paise": 100,
        "approved": True,
    }
    data.update(overrides)
    return Location(**data)


def make_reservation(**overrides) -> Reservation:
    """Confirmed one-hour reservation at location 1 for cust-1."""
    data = {
        "id": 1,
        "location_id": 1,
        "customer_user_id": "cust-1",
        "vehicle_number": "KA01AB1234",
        "start_time": T0,
        "end_time": T0 + timedelta(hours=1),
        "duration_minutes": 60,
        "price_paise": 100,
        "status": ReservationStatus.CONFIRMED,
    }
    data.update(overrides)
    return Reservation(**data)


@pytest.fixture
def location():
    return make_location()


@pytest.fixture
def t0():
    """Fixed window start well in the future."""
    return T0


@pytest.fixture
def location_factory():
    return make_location


@pytest.fixture
def reservation_factory():
    return make_reservation
