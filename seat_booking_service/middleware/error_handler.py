"""
Error handling middleware for the seat booking service.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.exceptions import (
    BookingServiceError,
    ErrorCode,
    ValidationError,
    NotFoundError,
    BusinessLogicError,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INSUFFICIENT_CAPACITY: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_BELOW_BOOKED: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_HAS_BOOKINGS: status.HTTP_409_CONFLICT,
    ErrorCode.TRANSACTION_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.LEDGER_INTEGRITY_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _get_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _error_body(error: BookingServiceError, error_id: str) -> Dict[str, Any]:
    return {
        "error": error.to_dict(),
        "error_id": error_id,
        "timestamp": _get_timestamp()
    }


def status_code_for_error(exc: BookingServiceError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def field_errors_from(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group pydantic error entries by dotted field path, dropping the 'body' prefix."""
    field_errors: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error["loc"] if part != "body"]
        field_path = ".".join(loc) or "body"
        field_errors.setdefault(field_path, []).append(error["msg"])
    return field_errors


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI request validation failures in the service error envelope."""
    error_id = str(uuid4())
    validation_error = ValidationError(
        "Request validation failed",
        field_errors=field_errors_from(exc.errors())
    )
    logger.warning(
        f"Client error [{error_id}]: {validation_error.message}",
        extra={
            "error_id": error_id,
            "error_code": validation_error.error_code.value,
            "path": request.url.path,
            "details": validation_error.details
        }
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(validation_error, error_id)
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware turning service exceptions into JSON error responses."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any exceptions."""
        error_id = str(uuid4())

        try:
            response = await call_next(request)
            return response

        except Exception as exc:
            return await self._handle_exception(request, exc, error_id)

    async def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        """Handle different types of exceptions and return appropriate responses."""
        self._log_error(request, exc, error_id)

        if isinstance(exc, BookingServiceError):
            return JSONResponse(
                status_code=status_code_for_error(exc),
                content=_error_body(exc, error_id)
            )

        return self._handle_unexpected_error(exc, error_id)

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        """Handle unexpected errors."""
        error = BookingServiceError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )

        response_data = _error_body(error, error_id)

        # Include stack trace in debug mode
        if self.debug:
            response_data["debug"] = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response_data
        )

    def _log_error(self, request: Request, exc: Exception, error_id: str) -> None:
        """Log error with request context."""
        request_info = {
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else None,
        }

        if isinstance(exc, BookingServiceError):
            extra = {
                "error_id": error_id,
                "error_code": exc.error_code.value,
                "request": request_info,
                "details": exc.details
            }
            if isinstance(exc, (ValidationError, NotFoundError, BusinessLogicError)):
                logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
            else:
                logger.error(f"System error [{error_id}]: {exc.message}", extra=extra)
        else:
            logger.error(
                f"Unexpected error [{error_id}]: {str(exc)}",
                extra={
                    "error_id": error_id,
                    "error_type": type(exc).__name__,
                    "request": request_info,
                    "traceback": traceback.format_exc()
                }
            )
