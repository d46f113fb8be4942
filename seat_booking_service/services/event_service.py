"""
Event service for managing events and their operations.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import get_cache, CacheKeyBuilder, CacheTTL, CacheInvalidator
from ..config import Settings, get_settings
from ..models import Booking, Event
from ..schemas.event import EventCreate, EventUpdate
from ..utils.exceptions import EventHasBookingsError, EventNotFoundError
from ..utils.logging_config import log_business_event
from .inventory_ledger import InventoryLedger, LedgerAudit
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("event_date", "created_at", "updated_at")


def _event_to_cache(event: Event) -> Dict[str, Any]:
    return {
        "id": event.id,
        "name": event.name,
        "event_date": event.event_date.isoformat(),
        "total_seats": event.total_seats,
        "available_seats": event.available_seats,
        "created_at": event.created_at.isoformat(),
        "updated_at": event.updated_at.isoformat(),
    }


def _event_from_cache(data: Dict[str, Any]) -> Event:
    """Rebuild a detached Event from its cached form."""
    values = dict(data)
    for field in _DATETIME_FIELDS:
        values[field] = datetime.fromisoformat(values[field])
    return Event(**values)


class EventService:
    """Service class for event management operations."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        """Initialize the event service with database session."""
        self.db = db
        self.settings = settings or get_settings()
        self.cache = get_cache()

    async def create_event(self, event_data: EventCreate) -> Event:
        """
        Create a new event with every seat available.

        Args:
            event_data: Event creation data

        Returns:
            Created event instance
        """
        async def unit_of_work() -> Event:
            event = Event(
                name=event_data.name,
                event_date=event_data.event_date,
                total_seats=event_data.total_seats,
                available_seats=event_data.total_seats,
            )
            self.db.add(event)
            await self.db.flush()
            return event

        event = await run_in_transaction(
            self.db, "create_event", unit_of_work,
            timeout=self.settings.transaction_timeout_seconds
        )

        await CacheInvalidator.invalidate_event_list_caches()
        log_business_event("event_created", {"event_id": event.id, "total_seats": event.total_seats})
        return event

    async def get_event(self, event_id: int) -> Event:
        """
        Get event by ID with caching.

        The result is for display only. A fill is skipped when an event
        change was invalidated while the row was being read.

        Raises:
            EventNotFoundError: If event is not found
        """
        cache_key = CacheKeyBuilder.event_detail(event_id)
        cached_event = await self.cache.get(cache_key)

        if cached_event:
            return _event_from_cache(cached_event)

        generation = await self.cache.get_generation(CacheKeyBuilder.event_generation())
        result = await self.db.execute(
            select(Event).where(Event.id == event_id)
        )
        event = result.scalar_one_or_none()
        if not event:
            raise EventNotFoundError(event_id)

        await self._end_read()
        await self.cache.set_if_generation(
            cache_key, _event_to_cache(event), CacheTTL.EVENT_DETAIL,
            CacheKeyBuilder.event_generation(), generation
        )
        return event

    async def list_events(self, limit: int = 100, offset: int = 0) -> Tuple[list[Event], int]:
        """
        List events ordered by date, with caching.

        Args:
            limit: Maximum number of events returned
            offset: Number of events skipped

        Returns:
            Tuple of (events list, total count)
        """
        cache_key = CacheKeyBuilder.event_list(limit, offset)
        cached_result = await self.cache.get(cache_key)

        if cached_result:
            events_data, total = cached_result
            return [_event_from_cache(data) for data in events_data], total

        generation = await self.cache.get_generation(CacheKeyBuilder.event_generation())
        total = (await self.db.execute(select(func.count(Event.id)))).scalar()

        events_query = (
            select(Event)
            .order_by(Event.event_date, Event.id)
            .offset(offset)
            .limit(limit)
        )
        events = list((await self.db.execute(events_query)).scalars().all())

        await self._end_read()
        await self.cache.set_if_generation(
            cache_key,
            ([_event_to_cache(event) for event in events], total),
            CacheTTL.EVENT_LIST,
            CacheKeyBuilder.event_generation(),
            generation
        )
        return events, total

    async def _end_read(self) -> None:
        """Finish the read transaction so no lock is held across Redis calls."""
        if self.db.in_transaction():
            await self.db.commit()

    async def update_event(self, event_id: int, event_data: EventUpdate) -> Event:
        """
        Update an existing event.

        A new total_seats is applied through the ledger under the event's row
        lock, so booked seats stay fixed and available_seats moves by the same
        delta.

        Raises:
            EventNotFoundError: If event is not found
            CapacityBelowBookedError: If total_seats would drop below booked seats
        """
        update_data = event_data.model_dump(exclude_unset=True)

        async def unit_of_work() -> Event:
            ledger = InventoryLedger(self.db)
            event = await ledger.lock_for_update(event_id)

            if "total_seats" in update_data and update_data["total_seats"] is not None:
                await ledger.adjust_total(event_id, update_data.pop("total_seats"))

            for field in ("name", "event_date"):
                if update_data.get(field) is not None:
                    setattr(event, field, update_data[field])

            await self.db.flush()
            await self.db.refresh(event)
            return event

        event = await run_in_transaction(
            self.db, "update_event", unit_of_work,
            timeout=self.settings.transaction_timeout_seconds
        )

        await CacheInvalidator.invalidate_event_caches(event_id)
        log_business_event(
            "event_updated",
            {"event_id": event_id, "total_seats": event.total_seats, "available_seats": event.available_seats}
        )
        return event

    async def delete_event(self, event_id: int) -> None:
        """
        Delete an event that has no bookings.

        Raises:
            EventNotFoundError: If event is not found
            EventHasBookingsError: If bookings still reference the event
        """
        async def unit_of_work() -> None:
            ledger = InventoryLedger(self.db)
            event = await ledger.lock_for_update(event_id)

            booking_count = (
                await self.db.execute(
                    select(func.count(Booking.id)).where(Booking.event_id == event_id)
                )
            ).scalar()

            if booking_count > 0:
                raise EventHasBookingsError(event_id, booking_count)

            await self.db.delete(event)
            await self.db.flush()

        await run_in_transaction(
            self.db, "delete_event", unit_of_work,
            timeout=self.settings.transaction_timeout_seconds
        )

        await CacheInvalidator.invalidate_event_caches(event_id)
        log_business_event("event_deleted", {"event_id": event_id})

    async def get_ledger_audit(self, event_id: int) -> LedgerAudit:
        """Compare the event's seat counters with its bookings. Never cached."""
        return await InventoryLedger(self.db).audit(event_id)
