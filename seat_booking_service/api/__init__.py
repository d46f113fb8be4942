"""API endpoints for the seat booking service."""

from fastapi import APIRouter
from .events import router as events_router
from .bookings import router as bookings_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include all routers
api_router.include_router(events_router)
api_router.include_router(bookings_router)

__all__ = ["api_router"]
