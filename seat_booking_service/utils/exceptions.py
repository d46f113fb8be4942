"""
Custom exceptions for the seat booking service.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the service."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"

    # Business logic errors
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    CAPACITY_BELOW_BOOKED = "CAPACITY_BELOW_BOOKED"
    EVENT_HAS_BOOKINGS = "EVENT_HAS_BOOKINGS"

    # Storage errors
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"
    LEDGER_INTEGRITY_ERROR = "LEDGER_INTEGRITY_ERROR"


class BookingServiceError(Exception):
    """Base exception class for the booking service."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        return result


class ValidationError(BookingServiceError):
    """Exception raised for malformed or missing input."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        if field_errors:
            details = {**(details or {}), "field_errors": field_errors}
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(BookingServiceError):
    """Base exception for resource not found errors."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        **kwargs
    ):
        super().__init__(
            message,
            error_code=error_code,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )
        self.resource_id = resource_id


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: Any, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=event_id,
            error_code=ErrorCode.EVENT_NOT_FOUND,
            suggestions=["Check the event ID", "Browse available events"],
            **kwargs
        )
        self.event_id = event_id


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: Any, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=booking_id,
            error_code=ErrorCode.BOOKING_NOT_FOUND,
            suggestions=["Check the booking ID"],
            **kwargs
        )
        self.booking_id = booking_id


class BusinessLogicError(BookingServiceError):
    """Base exception for business rule violations."""
    pass


class InsufficientCapacityError(BusinessLogicError):
    """Exception raised when an event does not have enough seats left."""

    def __init__(self, requested: int, available: int, event_id: Optional[int] = None, **kwargs):
        super().__init__(
            f"Insufficient capacity: requested {requested}, available {available}",
            error_code=ErrorCode.INSUFFICIENT_CAPACITY,
            details={"requested": requested, "available": available, "event_id": event_id},
            suggestions=["Try booking fewer seats"],
            **kwargs
        )
        self.requested = requested
        self.available = available
        self.event_id = event_id


class CapacityBelowBookedError(BusinessLogicError):
    """Exception raised when total seats would drop below seats already booked."""

    def __init__(self, event_id: int, requested_total: int, booked: int, **kwargs):
        super().__init__(
            f"Cannot set total seats of event {event_id} to {requested_total}: {booked} seats are booked",
            error_code=ErrorCode.CAPACITY_BELOW_BOOKED,
            details={"event_id": event_id, "requested_total": requested_total, "booked": booked},
            suggestions=["Cancel bookings first", f"Use a total of at least {booked}"],
            **kwargs
        )


class EventHasBookingsError(BusinessLogicError):
    """Exception raised when trying to delete an event with bookings."""

    def __init__(self, event_id: int, booking_count: int, **kwargs):
        super().__init__(
            f"Cannot delete event {event_id} with {booking_count} active bookings",
            error_code=ErrorCode.EVENT_HAS_BOOKINGS,
            details={"event_id": event_id, "booking_count": booking_count},
            suggestions=["Cancel all bookings first"],
            **kwargs
        )


class TransactionFailure(BookingServiceError):
    """Storage-layer fault: connection loss, deadlock, serialization failure, timeout."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            f"Transaction failed during {operation}: {reason}",
            error_code=ErrorCode.TRANSACTION_FAILURE,
            details={"operation": operation},
            suggestions=["Try again later"],
            **kwargs
        )
        self.operation = operation


class LedgerIntegrityError(BookingServiceError):
    """Stored seat counts contradict the ledger invariants."""

    def __init__(self, event_id: int, message: str, **kwargs):
        super().__init__(
            f"Ledger integrity fault on event {event_id}: {message}",
            error_code=ErrorCode.LEDGER_INTEGRITY_ERROR,
            details={"event_id": event_id},
            **kwargs
        )


class LedgerLockNotHeldError(RuntimeError):
    """A capacity mutation was attempted without holding the event's row lock."""

    def __init__(self, event_id: int):
        super().__init__(f"Row lock for event {event_id} is not held by this transaction")
        self.event_id = event_id
