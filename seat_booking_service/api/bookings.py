"""
FastAPI routes for booking management with concurrency control.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..services.booking_service import BookingService
from ..schemas.booking import BookingCreateRequest, BookingResponse
from ..schemas.common import ErrorResponse

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
    responses={
        404: {"model": ErrorResponse, "description": "Event or booking not found"},
        409: {"model": ErrorResponse, "description": "Not enough seats left"},
        422: {"model": ErrorResponse, "description": "Invalid request"},
        503: {"model": ErrorResponse, "description": "Transaction failed or timed out"},
    },
)


def get_booking_service(request: Request, db: AsyncSession = Depends(get_db)) -> BookingService:
    """Dependency to get booking service instance."""
    return BookingService(db, request.app.state.settings)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get bookings with the name of the event each one belongs to."""
    bookings = await booking_service.list_bookings(limit=limit, offset=offset)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreateRequest,
    booking_service: BookingService = Depends(get_booking_service)
):
    """
    Book seats for an event.

    The event row is locked for the duration of the booking, so concurrent
    requests for the last seats cannot both succeed.

    - **event_id**: ID of the event to book
    - **customer_name**: Name the booking is held under
    - **seats_booked**: Number of seats, at least 1

    Returns 404 when the event does not exist and 409 when fewer seats remain
    than requested.
    """
    booking = await booking_service.create_booking(
        event_id=booking_data.event_id,
        customer_name=booking_data.customer_name,
        seats_booked=booking_data.seats_booked
    )
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get a booking by ID."""
    booking = await booking_service.get_booking(booking_id)
    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(
    booking_id: int,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking and return its seats to the event."""
    await booking_service.cancel_booking(booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
