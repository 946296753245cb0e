"""Exponential backoff with jitter for async API calls.

Retries on transient HTTP errors (429, 500, 502, 503, 504) and connection errors.
Respects Retry-After headers. Logs each retry attempt.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

# HTTP status codes that trigger a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Transport failures worth another attempt
RETRYABLE_TRANSPORT_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.RemoteProtocolError,
)


def retry_with_backoff(
    max_retries: int | Callable[[Any], int] = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: float = 0.3,
) -> Callable:
    """Decorator: retry a coroutine function with exponential backoff + jitter.

    The wrapped coroutine must return an ``httpx.Response``; retryable
    status codes are retried, anything else is returned to the caller as-is.

    Args:
        max_retries: Maximum number of retry attempts, or a callable taking
            the bound ``self`` and returning it (for per-client settings).
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay cap in seconds.
        jitter: Jitter factor (0.0-1.0). Adds randomness to prevent thundering herd.
    """

    def decorator(fn: Callable[..., Awaitable[httpx.Response]]) -> Callable:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> httpx.Response:
            retries = max_retries(args[0]) if callable(max_retries) else max_retries
            for attempt in range(retries + 1):
                try:
                    response = await fn(*args, **kwargs)
                except RETRYABLE_TRANSPORT_ERRORS as e:
                    if attempt == retries:
                        raise
                    delay = _compute_delay(attempt, base_delay, max_delay, jitter)
                    logger.warning(
                        "Retry %d/%d for %s (connection error: %s), waiting %.1fs",
                        attempt + 1,
                        retries,
                        fn.__name__,
                        type(e).__name__,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.status_code not in RETRYABLE_STATUS_CODES or attempt == retries:
                    return response
                delay = _compute_delay(attempt, base_delay, max_delay, jitter, response)
                logger.warning(
                    "Retry %d/%d for %s (HTTP %d), waiting %.1fs",
                    attempt + 1,
                    retries,
                    fn.__name__,
                    response.status_code,
                    delay,
                )
                await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator


def _compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float,
    response: httpx.Response | None = None,
) -> float:
    """Compute delay with exponential backoff + jitter, respecting Retry-After."""
    if response is not None:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), max_delay)
            except ValueError:
                pass

    # Exponential backoff: base * 2^attempt
    delay = base_delay * (2**attempt)
    delay = min(delay, max_delay)

    jitter_amount = delay * jitter
    delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.1, delay)
