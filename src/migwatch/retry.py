"""Bounded exponential backoff for fallible async operations.

Every call is independent: no shared state, safe to use from many
concurrent tasks at once.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from migwatch.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_RATE_LIMIT_MARKERS = ("429", "rate limit", "Too Many Requests")


def is_rate_limited(error: BaseException) -> bool:
    """Return True when the error message looks like an HTTP 429 / rate-limit response."""
    message = str(error)
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    rate_limited: bool = False,
) -> float:
    """Delay before retry number ``attempt + 1``, in seconds.

    Doubles per attempt, doubles again for rate-limit failures, capped at max_delay.
    """
    multiplier = 2 if rate_limited else 1
    return min(base_delay * (2**attempt) * multiplier, max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> T:
    """Execute ``operation`` with up to ``max_retries`` retries.

    Makes at most ``max_retries + 1`` attempts. After the final failure the
    last exception propagates to the caller unchanged.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        max_retries: Retries after the first attempt.
        base_delay: Initial delay in seconds.
        max_delay: Upper bound on any single delay in seconds.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries:
                raise

            rate_limited = is_rate_limited(e)
            delay = compute_delay(attempt, base_delay, max_delay, rate_limited)

            if rate_limited:
                logger.warning(
                    "rate_limit_exceeded",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                )
            else:
                logger.warning(
                    "operation_retry",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e),
                )

            await asyncio.sleep(delay)
            attempt += 1
