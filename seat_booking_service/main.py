"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from .api import api_router
from .cache import init_cache, close_cache
from .config import Settings, get_settings
from .database import DatabaseManager
from .middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    request_validation_exception_handler,
)
from .schemas.common import HealthStatus
from .utils.health_check import get_health_status
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the connection pool and the cache for the application's lifetime."""
    settings: Settings = app.state.settings

    logger.info(f"Starting {settings.service_name}")

    # Tests may install their own manager before startup
    if getattr(app.state, "db_manager", None) is None:
        db_manager = DatabaseManager(settings)
        await db_manager.initialize()
        app.state.db_manager = db_manager
        owns_db = True
    else:
        owns_db = False

    await init_cache(settings)
    logger.info("Database and cache initialized")

    try:
        yield
    finally:
        logger.info(f"Shutting down {settings.service_name}")
        await close_cache()
        if owns_db:
            await app.state.db_manager.close()
            app.state.db_manager = None
        logger.info("Database connections closed")


def create_app(settings: Optional[Settings] = None, configure_logging: bool = True) -> FastAPI:
    """Build the application with its middleware stack and routes."""
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            log_level="DEBUG" if settings.debug else settings.log_level,
            log_file="logs/booking-service.log" if settings.environment == "production" else None,
            enable_json_logging=settings.enable_json_logging,
        )

    app = FastAPI(
        title="Seat Booking Service API",
        description="""
    ## Seat Booking Service

    Books seats for events without overselling under concurrent load.

    * **Events**: create, list, update and delete events with a fixed seat count
    * **Bookings**: book and cancel seats; each booking locks its event row
    * **Ledger audit**: compare an event's seat counters with its bookings
    """,
        version="1.0.0",
        openapi_tags=[
            {"name": "events", "description": "Event and capacity management"},
            {"name": "bookings", "description": "Seat booking and cancellation"},
            {"name": "health", "description": "Service health endpoints"},
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db_manager = None

    # Added last runs first: logging wraps error handling
    app.add_middleware(ErrorHandlerMiddleware, debug=settings.debug)
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    app.include_router(api_router)

    @app.get("/health", response_model=HealthStatus, tags=["health"])
    async def health_check():
        """Basic liveness check."""
        return HealthStatus(status="UP", service=settings.service_name)

    @app.get("/health/detailed", tags=["health"])
    async def detailed_health_check(request: Request):
        """Database connectivity and cache status."""
        return await get_health_status(request.app.state.db_manager, settings.service_name)

    return app


app = create_app()
