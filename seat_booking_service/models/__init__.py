"""
Database models for the seat booking service.
"""

from .base import Base
from .event import Event
from .booking import Booking

__all__ = [
    "Base",
    "Event",
    "Booking",
]
