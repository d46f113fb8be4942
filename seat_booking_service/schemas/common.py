"""
Common schemas for API responses and error handling.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: str
    timestamp: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "INSUFFICIENT_CAPACITY",
                        "message": "Insufficient capacity: requested 3, available 1",
                        "details": {"requested": 3, "available": 1, "event_id": 7},
                        "suggestions": ["Try booking fewer seats"]
                    },
                    "error_id": "5f0c6a8e-1d2b-4f7a-9c1e-2b3d4e5f6a7b",
                    "timestamp": "2026-05-01T12:00:00Z"
                }
            ]
        }
    }


class HealthStatus(BaseModel):
    """Schema for the basic health check."""

    status: str = Field(..., description="UP when the service is serving requests")
    service: str = Field(..., description="Service name")
