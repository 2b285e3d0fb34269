import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from errors import is_retryable
from models import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delay_ms(policy: RetryPolicy, attempt: int) -> int:
    """Delay to wait after the given (1-indexed) failed attempt."""
    return policy.base_delay_ms * 2 ** (attempt - 1)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await operation() up to policy.max_attempts times.

    Only retryable errors (see errors.is_retryable) are retried. The error
    of the final attempt is re-raised as-is.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.max_attempts or not is_retryable(e):
                raise
            delay = backoff_delay_ms(policy, attempt)
            logger.warning("Attempt failed, retrying", attempt=attempt, delay_ms=delay, error=str(e))
            await sleep(delay / 1000)
            attempt += 1
