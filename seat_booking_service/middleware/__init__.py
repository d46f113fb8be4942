"""Middleware components for the seat booking service."""

from .error_handler import ErrorHandlerMiddleware, request_validation_exception_handler
from .logging import LoggingMiddleware, request_id_var

__all__ = [
    "ErrorHandlerMiddleware",
    "LoggingMiddleware",
    "request_validation_exception_handler",
    "request_id_var",
]
