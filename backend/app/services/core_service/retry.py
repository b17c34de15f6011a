# backend/app/services/core_service/retry.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

T = TypeVar("T")

logger = logging.getLogger(__name__)


def is_transient_transport_error(e: Exception) -> bool:
    # Timeouts are handled by the caller (they count against the oracle
    # deadline), so only connection-level failures are worth another try.
    if isinstance(e, httpx.TimeoutException):
        return False
    return isinstance(e, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError))


async def async_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.6,
    max_delay: float = 4.0,
    jitter: float = 0.25,
    retry_if: Callable[[Exception], bool] = is_transient_transport_error,
) -> T:
    last_exc: Optional[Exception] = None
    attempts = max(1, attempts)

    for i in range(attempts):
        try:
            return await fn()
        except Exception as e:
            last_exc = e
            if i == attempts - 1 or not retry_if(e):
                raise

            # exponential backoff + jitter
            delay = min(max_delay, base_delay * (2 ** i))
            delay = delay * (1.0 + random.uniform(-jitter, jitter))
            logger.info(
                "Retrying after %s (attempt %d/%d, sleeping %.2fs)",
                type(e).__name__, i + 1, attempts, delay,
            )
            await asyncio.sleep(max(0.0, delay))

    # should never reach
    raise last_exc or RuntimeError("async_retry failed without exception")
