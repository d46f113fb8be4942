"""
Event management API endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.booking import BookingResponse
from ..schemas.common import ErrorResponse
from ..schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventListResponse,
    LedgerAuditResponse,
)
from ..services.booking_service import BookingService
from ..services.event_service import EventService


router = APIRouter(
    prefix="/events",
    tags=["events"],
    responses={
        404: {"model": ErrorResponse, "description": "Event not found"},
        409: {"model": ErrorResponse, "description": "Change conflicts with existing bookings"},
        422: {"model": ErrorResponse, "description": "Invalid request"},
    },
)


def get_event_service(request: Request, db: AsyncSession = Depends(get_db)) -> EventService:
    """Dependency to get event service instance."""
    return EventService(db, request.app.state.settings)


def get_booking_service(request: Request, db: AsyncSession = Depends(get_db)) -> BookingService:
    """Dependency to get booking service instance."""
    return BookingService(db, request.app.state.settings)


@router.get("", response_model=EventListResponse)
async def list_events(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of events"),
    offset: int = Query(0, ge=0, description="Number of events to skip"),
    event_service: EventService = Depends(get_event_service)
):
    """Get events ordered by date."""
    events, total = await event_service.list_events(limit=limit, offset=offset)
    return EventListResponse(
        events=[EventResponse.model_validate(event) for event in events],
        total=total,
        limit=limit,
        offset=offset
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    event_service: EventService = Depends(get_event_service)
):
    """
    Create a new event.

    Every seat starts out available.
    """
    event = await event_service.create_event(event_data)
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    event_service: EventService = Depends(get_event_service)
):
    """Get event details by ID."""
    event = await event_service.get_event(event_id)
    return EventResponse.model_validate(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    event_data: EventUpdate,
    event_service: EventService = Depends(get_event_service)
):
    """
    Update an event's name, date or total seats.

    Lowering total_seats below the seats already booked is rejected with 409.
    available_seats cannot be set directly.
    """
    event = await event_service.update_event(event_id, event_data)
    return EventResponse.model_validate(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    event_service: EventService = Depends(get_event_service)
):
    """Delete an event. Refused while bookings reference it."""
    await event_service.delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/bookings", response_model=List[BookingResponse])
async def list_event_bookings(
    event_id: int,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get all bookings of one event."""
    bookings = await booking_service.list_event_bookings(event_id)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get("/{event_id}/ledger", response_model=LedgerAuditResponse)
async def get_event_ledger(
    event_id: int,
    event_service: EventService = Depends(get_event_service)
):
    """Compare the event's seat counters with the bookings that reference it."""
    audit = await event_service.get_ledger_audit(event_id)
    return LedgerAuditResponse(**audit.to_dict())
