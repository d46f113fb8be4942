"""
Tests for booking creation and cancellation transactions.
"""

import asyncio
import time

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError

from seat_booking_service.database import DatabaseManager
from seat_booking_service.models import Booking, Event
from seat_booking_service.services.booking_service import BookingService
from seat_booking_service.services.inventory_ledger import InventoryLedger
from seat_booking_service.utils.exceptions import (
    BookingNotFoundError,
    ErrorCode,
    EventNotFoundError,
    InsufficientCapacityError,
    LedgerIntegrityError,
    TransactionFailure,
    ValidationError,
)


async def available_seats(db_manager, event_id: int) -> int:
    async with db_manager.get_session() as session:
        return (
            await session.execute(select(Event.available_seats).where(Event.id == event_id))
        ).scalar_one()


async def booking_count(db_manager) -> int:
    async with db_manager.get_session() as session:
        return (await session.execute(select(func.count(Booking.id)))).scalar_one()


def checked_out(db_manager) -> int:
    return db_manager.engine.pool.checkedout()


class TestCreateBooking:
    """Booking creation: lock, check, decrement, insert, commit."""

    async def test_booking_within_capacity(self, session, settings, make_event, db_manager):
        """A 100-seat event accepts 30 seats and then refuses 80."""
        event_id = await make_event(total_seats=100, name="Arena Show")
        service = BookingService(session, settings)

        booking = await service.create_booking(event_id, "Alice", 30)

        assert booking.id is not None
        assert booking.event_id == event_id
        assert booking.customer_name == "Alice"
        assert booking.seats_booked == 30
        assert booking.event_name == "Arena Show"
        assert booking.created_at is not None
        assert await available_seats(db_manager, event_id) == 70

        with pytest.raises(InsufficientCapacityError) as exc_info:
            await service.create_booking(event_id, "Bob", 80)

        assert exc_info.value.available == 70
        assert exc_info.value.requested == 80
        assert exc_info.value.error_code == ErrorCode.INSUFFICIENT_CAPACITY
        assert await available_seats(db_manager, event_id) == 70
        assert await booking_count(db_manager) == 1

    async def test_unknown_event(self, session, settings, db_manager):
        service = BookingService(session, settings)

        with pytest.raises(EventNotFoundError):
            await service.create_booking(9999, "Alice", 1)

        assert await booking_count(db_manager) == 0

    async def test_customer_name_is_stripped(self, session, settings, make_event):
        event_id = await make_event(total_seats=5)

        booking = await BookingService(session, settings).create_booking(event_id, "  Carol  ", 2)

        assert booking.customer_name == "Carol"

    async def test_book_every_remaining_seat(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=4)
        service = BookingService(session, settings)

        await service.create_booking(event_id, "Dave", 4)

        assert await available_seats(db_manager, event_id) == 0
        with pytest.raises(InsufficientCapacityError) as exc_info:
            await service.create_booking(event_id, "Erin", 1)
        assert exc_info.value.available == 0


class TestValidation:
    """Malformed requests are rejected before any storage access."""

    @pytest.mark.parametrize("seats", [0, -1, -50])
    async def test_non_positive_seats(self, settings, seats):
        # No session at all: validation must not reach storage
        service = BookingService(None, settings)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_booking(1, "Alice", seats)

        assert "seats_booked" in exc_info.value.field_errors

    @pytest.mark.parametrize("seats", [True, 1.5, "2", None])
    async def test_non_integer_seats(self, settings, seats):
        with pytest.raises(ValidationError):
            await BookingService(None, settings).create_booking(1, "Alice", seats)

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 256])
    async def test_bad_customer_name(self, settings, name):
        with pytest.raises(ValidationError) as exc_info:
            await BookingService(None, settings).create_booking(1, name, 1)

        assert "customer_name" in exc_info.value.field_errors

    async def test_bad_event_id(self, settings):
        with pytest.raises(ValidationError) as exc_info:
            await BookingService(None, settings).create_booking(0, "Alice", 1)

        assert "event_id" in exc_info.value.field_errors

    async def test_every_bad_field_is_reported(self, settings):
        with pytest.raises(ValidationError) as exc_info:
            await BookingService(None, settings).create_booking(-3, "", 0)

        assert set(exc_info.value.field_errors) == {"event_id", "customer_name", "seats_booked"}

    async def test_bad_booking_id_on_cancel(self, settings):
        with pytest.raises(ValidationError):
            await BookingService(None, settings).cancel_booking(0)


class TestCancelBooking:
    """Cancellation restores exactly the seats the booking took."""

    async def test_cancel_restores_capacity(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=100)
        service = BookingService(session, settings)
        await service.create_booking(event_id, "Alice", 30)
        assert await available_seats(db_manager, event_id) == 70

        booking = await service.create_booking(event_id, "Bob", 20)
        assert await available_seats(db_manager, event_id) == 50

        await service.cancel_booking(booking.id)

        assert await available_seats(db_manager, event_id) == 70
        with pytest.raises(BookingNotFoundError):
            await service.get_booking(booking.id)

    async def test_book_then_cancel_is_exact_reversal(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=12)
        service = BookingService(session, settings)
        await service.create_booking(event_id, "Alice", 5)
        before = await available_seats(db_manager, event_id)

        booking = await service.create_booking(event_id, "Bob", 7)
        await service.cancel_booking(booking.id)

        assert await available_seats(db_manager, event_id) == before

    async def test_cancel_unknown_booking(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=10)

        with pytest.raises(BookingNotFoundError) as exc_info:
            await BookingService(session, settings).cancel_booking(123456)

        assert exc_info.value.booking_id == 123456
        assert await available_seats(db_manager, event_id) == 10

    async def test_cancel_twice(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=10)
        service = BookingService(session, settings)
        booking = await service.create_booking(event_id, "Alice", 3)

        await service.cancel_booking(booking.id)
        with pytest.raises(BookingNotFoundError):
            await service.cancel_booking(booking.id)

        assert await available_seats(db_manager, event_id) == 10

    async def test_cancel_against_corrupt_counters(self, session, settings, make_event, db_manager):
        """Restoring seats past total_seats is surfaced, not capped."""
        event_id = await make_event(total_seats=5)
        service = BookingService(session, settings)
        booking = await service.create_booking(event_id, "Alice", 2)

        async with db_manager.get_session() as other:
            await other.execute(update(Event).where(Event.id == event_id).values(available_seats=5))

        with pytest.raises(LedgerIntegrityError):
            await service.cancel_booking(booking.id)

        # Rolled back: booking still there, counters untouched
        assert await booking_count(db_manager) == 1
        assert await available_seats(db_manager, event_id) == 5


class TestInvariants:
    """Counters always agree with live bookings."""

    async def test_sum_of_bookings_matches_counters(self, session, settings, make_event):
        event_id = await make_event(total_seats=20)
        service = BookingService(session, settings)

        first = await service.create_booking(event_id, "Alice", 3)
        await service.create_booking(event_id, "Bob", 5)
        await service.create_booking(event_id, "Carol", 4)
        await service.cancel_booking(first.id)
        with pytest.raises(InsufficientCapacityError):
            await service.create_booking(event_id, "Dave", 12)

        audit = await InventoryLedger(session).audit(event_id)
        assert audit.consistent
        assert audit.booked_seats == 9
        assert audit.seats_in_bookings == 9
        assert audit.booking_count == 2
        assert 0 <= audit.available_seats <= audit.total_seats


class TestTransactionFailures:
    """Storage faults and timeouts roll the whole unit back."""

    async def test_storage_fault_leaves_no_partial_state(
        self, session, settings, make_event, db_manager, monkeypatch
    ):
        event_id = await make_event(total_seats=10)
        original = InventoryLedger.decrement_available

        async def decrement_then_fail(self, event_id, count):
            await original(self, event_id, count)
            raise OperationalError("INSERT INTO bookings", {}, Exception("connection lost"))

        monkeypatch.setattr(InventoryLedger, "decrement_available", decrement_then_fail)

        with pytest.raises(TransactionFailure) as exc_info:
            await BookingService(session, settings).create_booking(event_id, "Alice", 4)

        assert exc_info.value.operation == "create_booking"
        assert exc_info.value.error_code == ErrorCode.TRANSACTION_FAILURE
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert await available_seats(db_manager, event_id) == 10
        assert await booking_count(db_manager) == 0
        assert checked_out(db_manager) == 0

    async def test_timeout_rolls_back(self, session, settings, make_event, db_manager, monkeypatch):
        event_id = await make_event(total_seats=10)
        settings.transaction_timeout_seconds = 0.2
        original = InventoryLedger.decrement_available

        async def slow_decrement(self, event_id, count):
            result = await original(self, event_id, count)
            await asyncio.sleep(5)
            return result

        monkeypatch.setattr(InventoryLedger, "decrement_available", slow_decrement)

        with pytest.raises(TransactionFailure) as exc_info:
            await BookingService(session, settings).create_booking(event_id, "Alice", 4)

        assert "timed out" in exc_info.value.message
        assert await available_seats(db_manager, event_id) == 10
        assert await booking_count(db_manager) == 0
        assert checked_out(db_manager) == 0

    async def test_lock_wait_is_bounded_by_timeout(self, settings, make_event, db_manager):
        event_id = await make_event(total_seats=5)
        fast_manager = DatabaseManager(
            settings.model_copy(update={"transaction_timeout_seconds": 0.5})
        )
        await fast_manager.initialize(create_tables=False)

        try:
            async with db_manager.get_session() as holder:
                await InventoryLedger(holder).lock_for_update(event_id)

                started = time.monotonic()
                async with fast_manager.get_session() as contender:
                    with pytest.raises(TransactionFailure):
                        await BookingService(contender, fast_manager.settings).create_booking(
                            event_id, "Alice", 1
                        )
                elapsed = time.monotonic() - started

                await holder.rollback()

            assert elapsed < 2.0
            assert checked_out(fast_manager) == 0
        finally:
            await fast_manager.close()

        assert await available_seats(db_manager, event_id) == 5
        assert await booking_count(db_manager) == 0

    async def test_connections_returned_after_failed_units(self, session, settings, make_event, db_manager):
        event_id = await make_event(total_seats=2)
        service = BookingService(session, settings)

        with pytest.raises(ValidationError):
            await service.create_booking(event_id, "Alice", 0)
        with pytest.raises(InsufficientCapacityError):
            await service.create_booking(event_id, "Alice", 3)
        with pytest.raises(EventNotFoundError):
            await service.create_booking(9999, "Alice", 1)
        with pytest.raises(BookingNotFoundError):
            await service.cancel_booking(9999)

        assert checked_out(db_manager) == 0


class TestReads:
    """Booking lookups resolve the event name."""

    async def test_get_booking(self, session, settings, make_event):
        event_id = await make_event(total_seats=10, name="Jazz Night")
        service = BookingService(session, settings)
        created = await service.create_booking(event_id, "Alice", 2)

        booking = await service.get_booking(created.id)

        assert booking.id == created.id
        assert booking.event_name == "Jazz Night"

    async def test_list_bookings(self, session, settings, make_event):
        first_event = await make_event(total_seats=10, name="Jazz Night")
        second_event = await make_event(total_seats=10, name="Opera")
        service = BookingService(session, settings)
        await service.create_booking(first_event, "Alice", 2)
        await service.create_booking(second_event, "Bob", 3)

        bookings = await service.list_bookings()

        assert [b.event_name for b in bookings] == ["Jazz Night", "Opera"]
        assert len(await service.list_bookings(limit=1, offset=1)) == 1

    async def test_list_event_bookings(self, session, settings, make_event):
        event_id = await make_event(total_seats=10)
        other_event = await make_event(total_seats=10)
        service = BookingService(session, settings)
        await service.create_booking(event_id, "Alice", 2)
        await service.create_booking(event_id, "Bob", 1)
        await service.create_booking(other_event, "Carol", 1)

        bookings = await service.list_event_bookings(event_id)

        assert [b.customer_name for b in bookings] == ["Alice", "Bob"]

    async def test_list_event_bookings_unknown_event(self, session, settings):
        with pytest.raises(EventNotFoundError):
            await BookingService(session, settings).list_event_bookings(31337)
