from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()
T = TypeVar("T")

RETRYABLE = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


def is_retryable(exc: Exception) -> bool:
    if isinstance(exc, RETRYABLE):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


async def read_retry(
    coro_factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    operation: str = "",
) -> T:
    """Retry an idempotent ledger read with exponential backoff.

    Only reads go through here. Writes are submitted once: a resubmitted fill
    could land twice on the ledger side.
    """
    for attempt in range(max_attempts):
        try:
            return await coro_factory()
        except httpx.HTTPError as e:
            if not is_retryable(e) or attempt == max_attempts - 1:
                logger.error("ledger_read_failed", op=operation, error=str(e),
                             attempts=attempt + 1)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning("ledger_read_retry", op=operation, attempt=attempt + 1,
                           delay=delay, error=str(e))
            await asyncio.sleep(delay)
    raise RuntimeError("read_retry called with max_attempts < 1")
