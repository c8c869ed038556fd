"""Unit tests for the reservation lifecycle service."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from parkops.errors import (
    AuthorizationError,
    CapacityError,
    InvalidStatusError,
    LocationBusyError,
    NotApprovedError,
    NotFoundError,
)
from parkops.handlers import run_operation
from parkops.models.identity import Identity, Role
from parkops.models.requests import BookingRequest
from parkops.models.reservation import ReservationStatus
from parkops.services.reservation_flow import ReservationFlowService
from parkops.storage.redis_locks import RedisLockHelper


def booking(t0, location_id=1, start_offset_min=0, minutes=60, vehicle="KA01AB1234"):
    start = t0 + timedelta(minutes=start_offset_min)
    return BookingRequest(
        location_id=location_id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        vehicle_number=vehicle,
    )


@pytest.fixture
def service(uow_factory, lock_helper, t0):
    # Clock sits before every test window unless a test overrides it
    return ReservationFlowService(
        uow_factory,
        lock_helper=lock_helper,
        clock=lambda: t0 - timedelta(days=1),
    )


def slots(store, location_id=1):
    return store.locations[location_id].available_slots


class TestBookingScenario:
    """End-to-end lifecycle on a single-slot location."""

    @pytest.mark.asyncio
    async def test_book_refuse_complete_rebook(
        self, service, store, location_factory, customer, other_customer, owner, t0
    ):
        store.add_location(
            location_factory(total_slots=1, available_slots=1, base_price_per_hour_paise=1000)
        )

        first = await service.create_reservation(customer, booking(t0, minutes=90))
        assert first.price_paise == 2000
        assert first.duration_minutes == 90
        assert first.status == ReservationStatus.CONFIRMED
        assert slots(store) == 0

        with pytest.raises(CapacityError):
            await service.create_reservation(other_customer, booking(t0, start_offset_min=30))

        completed = await service.complete_reservation(owner, first.id)
        assert completed.status == ReservationStatus.COMPLETED
        assert slots(store) == 1

        retry = await service.create_reservation(other_customer, booking(t0, start_offset_min=30))
        assert retry.status == ReservationStatus.CONFIRMED
        assert retry.customer_user_id == other_customer.user_id
        assert slots(store) == 0


class TestCreateReservation:
    """Tests for reservation creation."""

    @pytest.mark.asyncio
    async def test_reservation_belongs_to_caller(self, service, store, location, customer, t0):
        store.add_location(location)

        reservation = await service.create_reservation(customer, booking(t0))

        assert reservation.customer_user_id == "cust-1"
        assert store.reservations[reservation.id].vehicle_number == "KA01AB1234"

    @pytest.mark.asyncio
    async def test_takes_location_lock(self, service, store, location, customer, lock_helper, t0):
        store.add_location(location)

        await service.create_reservation(customer, booking(t0))

        assert lock_helper.acquired == [1]

    @pytest.mark.asyncio
    async def test_busy_location(self, service, store, location, customer, lock_helper, t0):
        store.add_location(location)
        lock_helper.busy.add(1)

        with pytest.raises(LocationBusyError) as exc_info:
            await service.create_reservation(customer, booking(t0))

        assert exc_info.value.code == "LOCATION_BUSY"
        assert store.reservations == {}
        assert slots(store) == 2

    @pytest.mark.asyncio
    async def test_works_without_lock_helper(self, uow_factory, store, location, customer, t0):
        store.add_location(location)
        service = ReservationFlowService(uow_factory)

        reservation = await service.create_reservation(customer, booking(t0))

        assert reservation.id in store.reservations

    @pytest.mark.asyncio
    async def test_lock_release_failure_after_commit(
        self, uow_factory, store, location, customer, t0
    ):
        store.add_location(location)
        lock_helper = RedisLockHelper("redis://localhost:6379/0")
        client = MagicMock()
        client.set = AsyncMock(return_value=True)
        client.eval = AsyncMock(side_effect=RedisConnectionError("connection dropped"))
        lock_helper._client = client
        service = ReservationFlowService(
            uow_factory, lock_helper=lock_helper, clock=lambda: t0 - timedelta(days=1)
        )

        result = await run_operation(
            "create_reservation",
            lambda: service.create_reservation(customer, booking(t0)),
        )

        assert result.success
        assert list(store.reservations) == [result.data.id]
        assert slots(store) == 1

    @pytest.mark.asyncio
    async def test_missing_location(self, service, customer, t0):
        with pytest.raises(NotFoundError) as exc_info:
            await service.create_reservation(customer, booking(t0, location_id=99))

        assert exc_info.value.code == "LOCATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unapproved_location(self, service, store, location_factory, customer, t0):
        store.add_location(location_factory(approved=False))

        with pytest.raises(NotApprovedError):
            await service.create_reservation(customer, booking(t0))

        assert store.reservations == {}

    @pytest.mark.asyncio
    async def test_counter_fast_path(self, service, store, location_factory, customer, t0):
        store.add_location(location_factory(total_slots=2, available_slots=0))

        with pytest.raises(CapacityError) as exc_info:
            await service.create_reservation(customer, booking(t0))

        assert exc_info.value.code == "NO_AVAILABLE_SLOTS"

    @pytest.mark.asyncio
    async def test_window_fully_booked(
        self, service, store, location_factory, reservation_factory, customer, t0
    ):
        # Counter says free, but the window already holds total_slots bookings
        store.add_location(location_factory(total_slots=1, available_slots=1))
        store.add_reservation(reservation_factory(id=7))

        with pytest.raises(CapacityError) as exc_info:
            await service.create_reservation(customer, booking(t0, start_offset_min=30))

        assert exc_info.value.code == "SLOT_UNAVAILABLE"
        assert slots(store) == 1
        assert list(store.reservations) == [7]

    @pytest.mark.asyncio
    async def test_adjacent_windows_do_not_conflict(
        self, service, store, location_factory, customer, other_customer, t0
    ):
        store.add_location(location_factory(total_slots=2, available_slots=2))
        await service.create_reservation(customer, booking(t0, minutes=60))

        with patch.object(
            service.availability, "is_available", wraps=service.availability.is_available
        ) as spy:
            await service.create_reservation(other_customer, booking(t0, start_offset_min=60))

        _, _, existing = spy.call_args.args
        assert existing == []
        assert slots(store) == 0

    @pytest.mark.asyncio
    async def test_no_overcommit(self, service, store, location_factory, customer, t0):
        store.add_location(location_factory(total_slots=3, available_slots=3))

        results = await asyncio.gather(
            *(service.create_reservation(customer, booking(t0, vehicle=f"V{i}")) for i in range(5)),
            return_exceptions=True,
        )

        booked = [r for r in results if not isinstance(r, Exception)]
        refused = [r for r in results if isinstance(r, CapacityError)]
        assert len(booked) == 3
        assert len(refused) == 2
        assert slots(store) == 0

    @pytest.mark.asyncio
    async def test_failure_after_insert_rolls_back(self, service, store, location, customer, t0):
        store.add_location(location)
        store.fail_on.add("decrement_available_slots")

        with pytest.raises(RuntimeError):
            await service.create_reservation(customer, booking(t0))

        assert store.reservations == {}
        assert slots(store) == 2


class TestCloseReservation:
    """Tests for completion and cancellation."""

    @pytest.fixture
    def booked(self, store, location_factory, reservation_factory):
        store.add_location(location_factory(total_slots=2, available_slots=1))
        return store.add_reservation(reservation_factory(id=10))

    @pytest.mark.asyncio
    async def test_owner_completes(self, service, store, booked, owner):
        completed = await service.complete_reservation(owner, booked.id)

        assert completed.status == ReservationStatus.COMPLETED
        assert store.reservations[10].status == ReservationStatus.COMPLETED
        assert slots(store) == 2

    @pytest.mark.asyncio
    async def test_admin_completes(self, service, store, booked, admin):
        completed = await service.complete_reservation(admin, booked.id)

        assert completed.status == ReservationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_customer_cannot_complete(self, service, store, booked, customer):
        with pytest.raises(AuthorizationError):
            await service.complete_reservation(customer, booked.id)

        assert store.reservations[10].status == ReservationStatus.CONFIRMED
        assert slots(store) == 1

    @pytest.mark.asyncio
    async def test_owner_role_without_ownership(self, service, booked):
        stranger = Identity(user_id="owner-2", roles=frozenset({Role.OWNER}))

        with pytest.raises(AuthorizationError):
            await service.complete_reservation(stranger, booked.id)

    @pytest.mark.asyncio
    async def test_complete_twice(self, service, store, booked, owner):
        await service.complete_reservation(owner, booked.id)

        with pytest.raises(InvalidStatusError):
            await service.complete_reservation(owner, booked.id)

        assert slots(store) == 2

    @pytest.mark.asyncio
    async def test_missing_reservation(self, service, owner):
        with pytest.raises(NotFoundError) as exc_info:
            await service.complete_reservation(owner, 404)

        assert exc_info.value.code == "RESERVATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_customer_cancels(self, service, store, booked, customer):
        cancelled = await service.cancel_reservation(customer, booked.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert slots(store) == 2

    @pytest.mark.asyncio
    async def test_other_customer_cannot_cancel(self, service, store, booked, other_customer):
        with pytest.raises(AuthorizationError):
            await service.cancel_reservation(other_customer, booked.id)

        assert slots(store) == 1

    @pytest.mark.asyncio
    async def test_cancel_after_window_ended(
        self, uow_factory, store, booked, customer, t0
    ):
        service = ReservationFlowService(uow_factory, clock=lambda: t0 + timedelta(hours=2))

        with pytest.raises(InvalidStatusError) as exc_info:
            await service.cancel_reservation(customer, booked.id)

        assert exc_info.value.code == "WINDOW_ENDED"
        assert store.reservations[10].status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_completed_reservation(self, service, store, booked, owner):
        await service.complete_reservation(owner, booked.id)

        with pytest.raises(InvalidStatusError):
            await service.cancel_reservation(owner, booked.id)

        assert store.reservations[10].status == ReservationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_slot_counter_stays_bounded(
        self, service, store, location_factory, reservation_factory, owner
    ):
        # Counter already full: the status change stands, the counter does not overflow
        store.add_location(location_factory(total_slots=1, available_slots=1))
        store.add_reservation(reservation_factory(id=11))

        completed = await service.complete_reservation(owner, 11)

        assert completed.status == ReservationStatus.COMPLETED
        assert slots(store) == 1

    @pytest.mark.asyncio
    async def test_failed_slot_return_keeps_reservation_confirmed(
        self, service, store, booked, owner
    ):
        store.fail_on.add("increment_available_slots")

        with pytest.raises(RuntimeError):
            await service.complete_reservation(owner, booked.id)

        assert store.reservations[10].status == ReservationStatus.CONFIRMED
        assert slots(store) == 1


class TestListingAndAvailability:
    """Tests for reservation listing and the free-slot counter."""

    @pytest.fixture
    def seeded(self, store, location_factory, reservation_factory):
        store.add_location(location_factory(id=1, owner_user_id="owner-1", available_slots=1))
        store.add_location(location_factory(id=2, owner_user_id="owner-2"))
        store.add_reservation(reservation_factory(id=1, location_id=1))
        store.add_reservation(
            reservation_factory(id=2, location_id=2, status=ReservationStatus.CANCELLED)
        )
        store.add_reservation(
            reservation_factory(id=3, location_id=1, customer_user_id="cust-2")
        )

    @pytest.mark.asyncio
    async def test_customer_sees_own(self, service, seeded, customer):
        reservations = await service.list_reservations(customer)

        assert [r.id for r in reservations] == [2, 1]

    @pytest.mark.asyncio
    async def test_status_filter(self, service, seeded, customer):
        reservations = await service.list_reservations(
            customer, status=ReservationStatus.CANCELLED
        )

        assert [r.id for r in reservations] == [2]

    @pytest.mark.asyncio
    async def test_owner_sees_owned_locations(self, service, seeded, owner):
        reservations = await service.list_reservations(owner, as_owner=True)

        assert [r.id for r in reservations] == [3, 1]

    @pytest.mark.asyncio
    async def test_owner_listing_requires_role(self, service, seeded, customer):
        with pytest.raises(AuthorizationError):
            await service.list_reservations(customer, as_owner=True)

    @pytest.mark.asyncio
    async def test_availability(self, service, seeded):
        availability = await service.get_availability(1)

        assert availability["available_slots"] == 1
        assert availability["updated_at"] is not None

    @pytest.mark.asyncio
    async def test_availability_hidden_for_unapproved(self, service, store, location_factory):
        store.add_location(location_factory(id=5, approved=False))

        with pytest.raises(NotFoundError):
            await service.get_availability(5)

    @pytest.mark.asyncio
    async def test_availability_missing(self, service):
        with pytest.raises(NotFoundError):
            await service.get_availability(404)
