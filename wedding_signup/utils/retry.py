# wedding_signup/utils/retry.py
"""
Async retry with exponential backoff + jitter for transport-level failures.

Only wrap calls whose request can be replayed safely, i.e. ones carrying an
idempotency key or whose effect is naturally idempotent.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterable, Tuple, Type, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")
ExcTuple = Tuple[Type[BaseException], ...]

# Failures where the request may never have reached the provider.
# HTTP error responses are answers, not transport failures, and are not retried.
TRANSIENT_HTTP_ERRORS: ExcTuple = (httpx.TransportError,)


async def retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_ms: int = 100,
    max_ms: int = 2000,
    jitter_ms: int = 50,
    retry_on: Iterable[Type[BaseException]] = TRANSIENT_HTTP_ERRORS,
    operation: str = "call",
) -> T:
    exc_types: ExcTuple = tuple(retry_on)
    # Always make at least one call
    attempts = max(1, attempts)
    delay = base_ms
    for i in range(attempts):
        try:
            return await fn()
        except exc_types as e:
            if i == attempts - 1:
                logger.warning(f"Giving up on {operation} after {attempts} attempt(s): {e!r}")
                raise
            logger.warning(f"Transient failure on {operation} (attempt {i + 1}/{attempts}): {e!r}")
            jitter = random.randint(0, jitter_ms)
            await asyncio.sleep(min((delay + jitter) / 1000.0, max_ms / 1000.0))
            delay = min(delay * 2, max_ms)
