# Filename: retry.py

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp

from errors import RateLimitError, TransientFetchError

logger = logging.getLogger("Retry")

T = TypeVar("T")


async def retry_async(operation: Callable[[], Awaitable[T]],
                      max_attempts: int = 3,
                      base_delay: float = 1.0,
                      on_error: Optional[Callable[[Exception, int], None]] = None,
                      sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> T:
    """
    Run `operation` until it succeeds, at most `max_attempts` times.

    Between attempts waits base_delay * 2^(attempt-1) seconds. The delay does not
    depend on the kind of error, `on_error` is only there to classify and log.
    The last exception is re-raised once attempts are exhausted.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if on_error:
                on_error(e, attempt)

            if attempt < max_attempts:
                delay = base_delay * 2 ** (attempt - 1)
                logger.warning(f"[RETRY] Attempt {attempt} failed. Retrying in {delay:.1f}s...")
                await sleep(delay)

    if last_error is None:
        raise RuntimeError("retry_async called with max_attempts < 1")
    raise last_error


def is_rate_limit_error(error: Exception) -> bool:
    if isinstance(error, RateLimitError):
        return True
    status = getattr(error, "status", None)
    return status in (429, 503)


def is_network_error(error: Exception) -> bool:
    if isinstance(error, (aiohttp.ClientConnectionError, asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(error, TransientFetchError) and error.status is None:
        return True
    message = str(error).lower()
    return "network" in message or "timeout" in message


def handle_api_error(error: Exception, context: str):
    if is_rate_limit_error(error):
        logger.warning(f"[{context}] Rate limit hit. Backing off before retry...")
    elif is_network_error(error):
        logger.warning(f"[{context}] Network error: {error}")
    else:
        logger.error(f"[{context}] API error: {error}")
