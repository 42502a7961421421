"""Bounded waits and single-retry helpers for store, hashing and signing calls."""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from studybuddy.core.errors import Unavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded(
    awaitable: Awaitable[T],
    timeout: float,
    operation: str,
    error: type[Unavailable] = Unavailable,
) -> T:
    """Await with a deadline; a timeout becomes ``error`` (an Unavailable)."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        logger.warning("%s timed out after %.1fs", operation, timeout)
        raise error(f"{operation} timed out") from e


async def retry_once(
    call: Callable[[], Awaitable[T]],
    backoff: float,
    operation: str,
) -> T:
    """Run ``call``; on Unavailable wait ``backoff`` seconds and try once more.

    Only for idempotent operations. The second failure propagates.
    """
    try:
        return await call()
    except Unavailable as e:
        logger.info("%s unavailable (%s), retrying once", operation, e)
        await asyncio.sleep(backoff)
        return await call()
