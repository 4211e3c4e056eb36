"""
Rate-limit retry with exponential backoff and jitter.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from core.config import (
    RETRY_MAX_ATTEMPTS,
    RETRY_BASE_DELAY_SEC,
    RETRY_JITTER_MAX_SEC,
)
from core.errors import RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = [
    "429",
    "resource_exhausted",
    "rate limit",
    "ratelimit",
    "quota",
    "too many requests",
]

RetryCallback = Callable[[int, float, RateLimited], None]


def is_rate_limit_error(error: Exception) -> bool:
    """Determine if the error text carries a quota/rate-limit marker."""
    error_str = str(error).lower()
    return any(marker in error_str for marker in RATE_LIMIT_MARKERS)


def compute_backoff_delay(
    attempt: int,
    base_delay: float = RETRY_BASE_DELAY_SEC,
    jitter_max: float = RETRY_JITTER_MAX_SEC,
    rng: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before the next attempt: base * 2^attempt + uniform(0, jitter_max)."""
    return base_delay * (2 ** attempt) + rng(0.0, jitter_max)


async def retry_on_rate_limit(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = RETRY_MAX_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SEC,
    jitter_max: float = RETRY_JITTER_MAX_SEC,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Callable[[float, float], float] = random.uniform,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """
    Await ``operation`` retrying only on RateLimited.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts including the first
        base_delay: Backoff base in seconds
        jitter_max: Upper bound of the uniform jitter in seconds
        sleep: Awaitable sleep used between attempts
        rng: Source of jitter, called as rng(0, jitter_max)
        on_retry: Called with (attempt, delay, error) before each backoff sleep

    Returns:
        Result of the first successful attempt

    Raises:
        RateLimited: the last rate-limit failure once attempts are exhausted.
        Any other exception from ``operation`` propagates immediately.
    """
    for attempt in range(max_attempts):
        try:
            return await operation()
        except RateLimited as e:
            if attempt >= max_attempts - 1:
                raise
            delay = compute_backoff_delay(attempt, base_delay, jitter_max, rng)
            logger.warning(
                f"Rate limited (attempt {attempt + 1}/{max_attempts}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            if on_retry is not None:
                on_retry(attempt + 1, delay, e)
            await sleep(delay)

    raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
