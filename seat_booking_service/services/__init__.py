"""Business logic services for the seat booking service."""

from .inventory_ledger import InventoryLedger, LedgerAudit
from .event_service import EventService
from .booking_service import BookingService, BookingRecord

__all__ = ["InventoryLedger", "LedgerAudit", "EventService", "BookingService", "BookingRecord"]
