"""Retry with exponential backoff for async operations."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from prd_engine.core.errors import RetryExhaustedError
from prd_engine.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY, jitter: float = 0.0) -> float:
    """
    Delay in seconds to wait after a failed attempt.

    Args:
        attempt: 1-based number of the attempt that just failed
        base_delay: Delay after the first failure
        jitter: Max fraction of the delay added at random (0 disables)

    Returns:
        base_delay * 2 ** (attempt - 1), optionally stretched by jitter
    """
    delay = base_delay * (2 ** (attempt - 1))
    if jitter > 0:
        delay *= 1 + random.uniform(0, jitter)
    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    jitter: float = 0.0,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    on_retry: Callable[[int, float, BaseException], None] | None = None,
) -> T:
    """
    Await ``operation`` until it succeeds, retrying transient failures.

    Errors rejected by ``is_retryable`` propagate on the first attempt. A
    retryable error on the final attempt propagates unchanged.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        is_retryable: Predicate deciding whether an error is transient
        max_attempts: Total attempts including the first
        base_delay: Backoff after the first failure, in seconds
        jitter: Max fractional jitter per delay
        sleep: Awaitable sleep used between attempts
        on_retry: Callback(attempt, delay, error) invoked before each wait

    Returns:
        The operation's result

    Raises:
        ValueError: If max_attempts < 1
        RetryExhaustedError: If the loop ends without a result or an error
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_attempts or not is_retryable(e):
                raise

            delay = backoff_delay(attempt, base_delay, jitter)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {e}. Retry in {delay:.2f}s",
                extra={"attempt": attempt, "delay_s": round(delay, 3)},
            )
            if on_retry is not None:
                on_retry(attempt, delay, e)
            await sleep(delay)

    raise RetryExhaustedError(f"All {max_attempts} retry attempts failed")
