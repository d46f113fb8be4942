"""
Event model holding the authoritative seat counts.
"""

from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .booking import Booking


class Event(Base):
    """Event row: the ledger entry for one event's capacity."""

    __tablename__ = "events"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    event_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )

    # Capacity management. Mutated only under a row lock.
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="event",
        passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("total_seats > 0", name="ck_events_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="ck_events_available_seats_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_events_seats_consistency"),
    )

    @property
    def booked_seats(self) -> int:
        """Seats currently held by live bookings."""
        return self.total_seats - self.available_seats

    @property
    def is_sold_out(self) -> bool:
        """Check if the event is sold out."""
        return self.available_seats == 0

    def __repr__(self) -> str:
        """String representation of the event."""
        return (
            f"<Event(id={self.id}, name='{self.name}', "
            f"date={self.event_date}, seats={self.available_seats}/{self.total_seats})>"
        )
