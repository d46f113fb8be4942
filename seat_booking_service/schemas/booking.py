"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt, field_validator


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    event_id: StrictInt = Field(..., gt=0, description="ID of the event to book")
    customer_name: str = Field(..., min_length=1, max_length=255, description="Name the booking is held under")
    seats_booked: StrictInt = Field(..., gt=0, description="Number of seats to book")

    @field_validator('customer_name')
    @classmethod
    def customer_name_must_not_be_blank(cls, v):
        """Validate that the customer name is not only whitespace."""
        if not v.strip():
            raise ValueError('customer_name must not be blank')
        return v.strip()


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: int
    event_id: int
    customer_name: str
    seats_booked: int
    created_at: Optional[datetime] = None

    # Related data
    event_name: Optional[str] = None

    model_config = {"from_attributes": True}
