"""
Inventory ledger: authoritative per-event seat counts.

A ledger is bound to one session whose transaction is already open. Every
capacity mutation must be preceded by ``lock_for_update`` on the same event in
the same transaction; the lock is released when that transaction commits or
rolls back.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from ..models.booking import Booking
from ..models.event import Event
from ..utils.exceptions import (
    CapacityBelowBookedError,
    EventNotFoundError,
    InsufficientCapacityError,
    LedgerIntegrityError,
    LedgerLockNotHeldError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerAudit:
    """Snapshot of an event's seat accounting."""

    event_id: int
    total_seats: int
    available_seats: int
    booked_seats: int
    seats_in_bookings: int
    booking_count: int

    @property
    def consistent(self) -> bool:
        return (
            0 <= self.available_seats <= self.total_seats
            and self.booked_seats == self.seats_in_bookings
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "consistent": self.consistent}


class InventoryLedger:
    """Capacity-checked mutation primitives over the events table."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._locked: Dict[int, Event] = {}

    async def lock_for_update(self, event_id: int) -> Event:
        """
        Lock the event row for the rest of the enclosing transaction.

        Concurrent lockers of the same row wait until this transaction ends.
        The returned Event reflects the row as read under the lock.

        Raises:
            EventNotFoundError: When no such event exists
        """
        query = (
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        event = result.scalar_one_or_none()

        if event is None:
            raise EventNotFoundError(event_id)

        self._locked[event_id] = event
        logger.debug("Locked event %s (available %s/%s)", event_id, event.available_seats, event.total_seats)
        return event

    def holds_lock(self, event_id: int) -> bool:
        return event_id in self._locked

    def _require_lock(self, event_id: int) -> Event:
        event = self._locked.get(event_id)
        if event is None:
            raise LedgerLockNotHeldError(event_id)
        return event

    async def decrement_available(self, event_id: int, count: int) -> Event:
        """
        Take ``count`` seats from the event.

        Raises:
            LedgerLockNotHeldError: When the row lock was not taken first
            InsufficientCapacityError: When fewer than ``count`` seats remain
        """
        event = self._require_lock(event_id)

        if event.available_seats < count:
            raise InsufficientCapacityError(
                requested=count,
                available=event.available_seats,
                event_id=event_id
            )

        result = await self.session.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_seats >= count)
            .values(available_seats=Event.available_seats - count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # The locked read said there was room; the row disagrees
            raise LedgerIntegrityError(event_id, "row changed while locked")

        set_committed_value(event, "available_seats", event.available_seats - count)
        return event

    async def increment_available(self, event_id: int, count: int) -> Event:
        """
        Give ``count`` seats back to the event.

        Only ever issued to reverse an earlier decrement of the same amount, so
        the result can never exceed total_seats unless stored state is corrupt.

        Raises:
            LedgerLockNotHeldError: When the row lock was not taken first
            LedgerIntegrityError: When the increment would exceed total_seats
        """
        event = self._require_lock(event_id)

        if event.available_seats + count > event.total_seats:
            raise LedgerIntegrityError(
                event_id,
                f"restoring {count} seats would exceed total "
                f"({event.available_seats} + {count} > {event.total_seats})"
            )

        await self.session.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(available_seats=Event.available_seats + count)
            .execution_options(synchronize_session=False)
        )

        set_committed_value(event, "available_seats", event.available_seats + count)
        return event

    async def adjust_total(self, event_id: int, new_total: int) -> Event:
        """
        Change an event's total seats, keeping booked seats fixed.

        Raises:
            LedgerLockNotHeldError: When the row lock was not taken first
            CapacityBelowBookedError: When new_total is below the booked count
        """
        event = self._require_lock(event_id)
        booked = event.booked_seats

        if new_total < booked:
            raise CapacityBelowBookedError(event_id, new_total, booked)

        await self.session.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(total_seats=new_total, available_seats=new_total - booked)
            .execution_options(synchronize_session=False)
        )

        set_committed_value(event, "total_seats", new_total)
        set_committed_value(event, "available_seats", new_total - booked)
        return event

    async def audit(self, event_id: int) -> LedgerAudit:
        """
        Compare the event's counters with the bookings that reference it.

        Read-only; takes no lock.

        Raises:
            EventNotFoundError: When no such event exists
        """
        event_row = (
            await self.session.execute(
                select(Event.total_seats, Event.available_seats).where(Event.id == event_id)
            )
        ).one_or_none()

        if event_row is None:
            raise EventNotFoundError(event_id)

        booking_row = (
            await self.session.execute(
                select(
                    func.coalesce(func.sum(Booking.seats_booked), 0),
                    func.count(Booking.id)
                ).where(Booking.event_id == event_id)
            )
        ).one()

        return LedgerAudit(
            event_id=event_id,
            total_seats=event_row.total_seats,
            available_seats=event_row.available_seats,
            booked_seats=event_row.total_seats - event_row.available_seats,
            seats_in_bookings=int(booking_row[0]),
            booking_count=int(booking_row[1]),
        )
