"""
Booking service: runs booking creation and cancellation as atomic units of work.

Both protocols lock the event row before looking at its seat counts. Checking
availability first and locking afterwards would let two transactions pass the
check on the same stale count.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..config import Settings, get_settings
from ..models.booking import Booking
from ..models.event import Event
from ..utils.exceptions import (
    BookingNotFoundError,
    EventNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from .inventory_ledger import InventoryLedger
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

MAX_CUSTOMER_NAME_LENGTH = 255


@dataclass(frozen=True)
class BookingRecord:
    """A booking together with the name of its event."""

    id: int
    event_id: int
    customer_name: str
    seats_booked: int
    created_at: Optional[datetime]
    event_name: Optional[str]

    @classmethod
    def from_booking(cls, booking: Booking, event_name: Optional[str]) -> "BookingRecord":
        return cls(
            id=booking.id,
            event_id=booking.event_id,
            customer_name=booking.customer_name,
            seats_booked=booking.seats_booked,
            created_at=booking.created_at,
            event_name=event_name,
        )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_booking_request(event_id: Any, customer_name: Any, seats_booked: Any) -> str:
    """
    Check a booking request before any storage access.

    Returns:
        The customer name with surrounding whitespace removed

    Raises:
        ValidationError: With one entry per offending field
    """
    field_errors: Dict[str, List[str]] = {}

    if not _is_positive_int(event_id):
        field_errors["event_id"] = ["must be a positive integer"]

    if not isinstance(customer_name, str) or not customer_name.strip():
        field_errors["customer_name"] = ["must be a non-empty string"]
    elif len(customer_name.strip()) > MAX_CUSTOMER_NAME_LENGTH:
        field_errors["customer_name"] = [f"must be at most {MAX_CUSTOMER_NAME_LENGTH} characters"]

    if not _is_positive_int(seats_booked):
        field_errors["seats_booked"] = ["must be a positive integer"]

    if field_errors:
        raise ValidationError(
            "All of event_id, customer_name and seats_booked are required; seats_booked must be positive",
            field_errors=field_errors
        )

    return customer_name.strip()


class BookingService:
    """Coordinator for booking transactions against the inventory ledger."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def create_booking(
        self,
        event_id: int,
        customer_name: str,
        seats_booked: int
    ) -> BookingRecord:
        """
        Book seats for an event.

        Args:
            event_id: ID of the event to book
            customer_name: Name the booking is held under
            seats_booked: Number of seats to take

        Returns:
            The created booking, with the event name resolved

        Raises:
            ValidationError: When the request is malformed (no storage access)
            EventNotFoundError: When the event does not exist
            InsufficientCapacityError: When fewer seats remain than requested
            TransactionFailure: On storage faults or timeout
        """
        customer_name = validate_booking_request(event_id, customer_name, seats_booked)

        logger.info(f"Creating booking for event {event_id}, {seats_booked} seats")

        async def unit_of_work() -> BookingRecord:
            ledger = InventoryLedger(self.session)

            event = await ledger.lock_for_update(event_id)
            await ledger.decrement_available(event_id, seats_booked)

            booking = Booking(
                event_id=event_id,
                customer_name=customer_name,
                seats_booked=seats_booked
            )
            self.session.add(booking)
            await self.session.flush()

            return BookingRecord.from_booking(booking, event.name)

        record = await run_in_transaction(
            self.session, "create_booking", unit_of_work,
            timeout=self.settings.transaction_timeout_seconds
        )

        await CacheInvalidator.invalidate_event_caches(event_id)
        log_business_event(
            "booking_created",
            {"booking_id": record.id, "event_id": event_id, "seats_booked": seats_booked}
        )
        logger.info(f"Booking {record.id} created successfully")
        return record

    async def cancel_booking(self, booking_id: int) -> None:
        """
        Cancel a booking and give its seats back to the event.

        Raises:
            ValidationError: When booking_id is malformed (no storage access)
            BookingNotFoundError: When the booking does not exist
            EventNotFoundError: When the booking references a missing event
            TransactionFailure: On storage faults or timeout
        """
        if not _is_positive_int(booking_id):
            raise ValidationError(
                "booking_id must be a positive integer",
                field_errors={"booking_id": ["must be a positive integer"]}
            )

        logger.info(f"Cancelling booking {booking_id}")

        async def unit_of_work() -> Booking:
            # Locked so a concurrent cancel of the same booking waits, then sees it gone
            booking = await self.session.get(
                Booking, booking_id, populate_existing=True, with_for_update=True
            )
            if booking is None:
                raise BookingNotFoundError(booking_id)

            ledger = InventoryLedger(self.session)

            # An orphaned booking is a data integrity fault, surfaced as-is
            await ledger.lock_for_update(booking.event_id)
            await ledger.increment_available(booking.event_id, booking.seats_booked)

            await self.session.delete(booking)
            await self.session.flush()
            return booking

        booking = await run_in_transaction(
            self.session, "cancel_booking", unit_of_work,
            timeout=self.settings.transaction_timeout_seconds
        )

        await CacheInvalidator.invalidate_event_caches(booking.event_id)
        log_business_event(
            "booking_cancelled",
            {"booking_id": booking_id, "event_id": booking.event_id, "seats_released": booking.seats_booked}
        )
        logger.info(f"Booking {booking_id} cancelled successfully")

    async def get_booking(self, booking_id: int) -> BookingRecord:
        """
        Get a booking by ID with its event name.

        Raises:
            BookingNotFoundError: When the booking does not exist
        """
        query = (
            select(Booking, Event.name)
            .join(Event, Booking.event_id == Event.id)
            .where(Booking.id == booking_id)
        )
        row = (await self.session.execute(query)).one_or_none()

        if row is None:
            raise BookingNotFoundError(booking_id)

        booking, event_name = row
        return BookingRecord.from_booking(booking, event_name)

    async def list_bookings(self, limit: int = 100, offset: int = 0) -> List[BookingRecord]:
        """List bookings with their event names, oldest first."""
        query = (
            select(Booking, Event.name)
            .join(Event, Booking.event_id == Event.id)
            .order_by(Booking.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return [BookingRecord.from_booking(booking, name) for booking, name in result.all()]

    async def list_event_bookings(self, event_id: int) -> List[BookingRecord]:
        """
        List the bookings of one event.

        Raises:
            EventNotFoundError: When the event does not exist
        """
        event_name = (
            await self.session.execute(select(Event.name).where(Event.id == event_id))
        ).scalar_one_or_none()

        if event_name is None:
            raise EventNotFoundError(event_id)

        result = await self.session.execute(
            select(Booking).where(Booking.event_id == event_id).order_by(Booking.id)
        )
        return [BookingRecord.from_booking(booking, event_name) for booking in result.scalars().all()]
