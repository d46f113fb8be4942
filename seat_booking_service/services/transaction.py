"""
Unit-of-work runner shared by the services that mutate seat inventory.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from ..utils.exceptions import TransactionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_transaction(
    session: AsyncSession,
    operation: str,
    work: Callable[[], Awaitable[T]],
    timeout: float
) -> T:
    """
    Run ``work`` inside one transaction, committing only if it returns.

    Any exception, a timeout or task cancellation rolls the whole unit back.
    Storage faults and timeouts surface as TransactionFailure and are not
    retried; business errors raised by ``work`` propagate unchanged.

    Args:
        session: Session the work operates on
        operation: Name used in logs and in the failure message
        work: Coroutine function performing the reads and writes
        timeout: Seconds before the unit is abandoned

    Returns:
        Whatever ``work`` returns
    """
    if session.in_transaction():
        # Finish the implicit read transaction left by earlier queries
        await session.commit()

    async def unit() -> T:
        async with session.begin():
            if session.get_bind().dialect.name == "postgresql":
                # Row lock waits end with an error instead of outliving the deadline
                await session.execute(
                    text(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'")
                )
            return await work()

    try:
        return await asyncio.wait_for(unit(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{operation} timed out after {timeout}s")
        raise TransactionFailure(operation, "timed out") from e
    except DBAPIError as e:
        reason = type(e.orig).__name__ if e.orig is not None else type(e).__name__
        logger.error(f"Storage error during {operation}: {reason}")
        raise TransactionFailure(operation, reason) from e
