"""
Booking model for seats deducted from an event.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .event import Event


class Booking(Base):
    """A live booking. Its seats_booked is already deducted from the event."""

    __tablename__ = "bookings"

    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("events.id"),
        nullable=False,
        index=True
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    seats_booked: Mapped[int] = mapped_column(Integer, nullable=False)

    event: Mapped["Event"] = relationship("Event", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("seats_booked > 0", name="ck_bookings_seats_booked_positive"),
    )

    def __repr__(self) -> str:
        """String representation of the booking."""
        return (
            f"<Booking(id={self.id}, event_id={self.event_id}, "
            f"customer_name='{self.customer_name}', seats_booked={self.seats_booked})>"
        )
