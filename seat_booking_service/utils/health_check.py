"""
Health check utilities for monitoring service dependencies.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from ..cache import RedisCache, get_cache
from ..database import DatabaseManager

logger = logging.getLogger(__name__)


class HealthCheckResult:
    """Result of a health check."""

    def __init__(self, service: str, healthy: bool, response_time: float, details: Optional[Dict[str, Any]] = None):
        self.service = service
        self.healthy = healthy
        self.response_time = response_time
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "healthy": self.healthy,
            "response_time": self.response_time,
            "details": self.details,
            "timestamp": self.timestamp
        }


async def check_database_health(db_manager: DatabaseManager) -> HealthCheckResult:
    """Check database connectivity and report pool usage."""
    start_time = time.perf_counter()

    try:
        ok = await db_manager.ping()
        return HealthCheckResult(
            service="database",
            healthy=ok,
            response_time=time.perf_counter() - start_time,
            details={"query": "SELECT 1", "pool": db_manager.pool_status()}
        )
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.error(f"Database health check failed: {e}")
        return HealthCheckResult(
            service="database",
            healthy=False,
            response_time=time.perf_counter() - start_time,
            details={"error": str(e), "error_type": type(e).__name__}
        )


async def check_cache_health(cache: Optional[RedisCache] = None) -> HealthCheckResult:
    """
    Check the Redis read cache.

    A disabled or unreachable cache only slows reads down, so it is reported
    but never marks the service unhealthy.
    """
    cache = cache or get_cache()
    start_time = time.perf_counter()

    if not cache.enabled:
        return HealthCheckResult(
            service="redis",
            healthy=True,
            response_time=0.0,
            details={"enabled": False}
        )

    try:
        await cache.client.ping()
        return HealthCheckResult(
            service="redis",
            healthy=True,
            response_time=time.perf_counter() - start_time,
            details={"enabled": True}
        )
    except RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        return HealthCheckResult(
            service="redis",
            healthy=True,
            response_time=time.perf_counter() - start_time,
            details={"enabled": True, "degraded": True, "error": str(e)}
        )


async def get_health_status(db_manager: DatabaseManager, service_name: str) -> Dict[str, Any]:
    """Get health status of the database and the cache."""
    start_time = time.perf_counter()

    results = await asyncio.gather(
        check_database_health(db_manager),
        check_cache_health(),
    )
    overall_healthy = all(result.healthy for result in results)

    return {
        "status": "UP" if overall_healthy else "DOWN",
        "service": service_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_check_time": time.perf_counter() - start_time,
        "checks": [result.to_dict() for result in results],
    }
