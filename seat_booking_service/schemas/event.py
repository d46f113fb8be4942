"""
Event schemas for request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict


class EventBase(BaseModel):
    """Base event schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Event name")
    event_date: datetime = Field(..., description="Event date and time")
    total_seats: int = Field(..., gt=0, description="Total number of seats")

    @field_validator('name')
    @classmethod
    def name_must_not_be_blank(cls, v):
        """Validate that the name is not only whitespace."""
        if not v.strip():
            raise ValueError('Event name must not be blank')
        return v.strip()


class EventCreate(EventBase):
    """Schema for creating a new event."""
    pass


class EventUpdate(BaseModel):
    """
    Schema for updating an existing event.

    available_seats is deliberately absent: it only ever changes through a
    booking, a cancellation or a total_seats adjustment.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_date: Optional[datetime] = None
    total_seats: Optional[int] = Field(None, gt=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator('name')
    @classmethod
    def name_must_not_be_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Event name must not be blank')
        return v.strip() if v is not None else v


class EventResponse(BaseModel):
    """Schema for event response."""

    id: int
    name: str
    event_date: datetime
    total_seats: int
    available_seats: int
    booked_seats: int
    is_sold_out: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    """Schema for paginated event list response."""

    events: list[EventResponse]
    total: int
    limit: int
    offset: int


class LedgerAuditResponse(BaseModel):
    """Seat accounting of one event compared against its bookings."""

    event_id: int
    total_seats: int
    available_seats: int
    booked_seats: int
    seats_in_bookings: int
    booking_count: int
    consistent: bool
