"""Bounded retry with linear back-off."""

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger


T = TypeVar("T")

NON_RETRYABLE_STATUS = (400, 401, 403)
_STATUS_IN_MESSAGE = re.compile(r"\b(400|401|403)\b")


def is_retryable(exc: BaseException) -> bool:
    """Tell transient failures from terminal ones."""
    if getattr(exc, "retryable", True) is False:
        return False
    if getattr(exc, "status_code", None) in NON_RETRYABLE_STATUS:
        return False
    return _STATUS_IN_MESSAGE.search(str(exc)) is None


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Maximum number of attempts
        base_delay: Seconds to wait after the first failure; the wait after
            failure i is base_delay * i
        sleep: Suspension used between attempts

    Returns:
        The result of the first successful attempt

    Raises:
        The first non-retryable failure, or the last failure once every
        attempt has been used.
    """
    max_attempts = max(1, max_attempts)
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if not is_retryable(e):
                raise
            if attempt < max_attempts:
                delay = base_delay * attempt
                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed: {e}, retrying in {delay:.1f}s"
                )
                await sleep(delay)

    logger.error(f"All {max_attempts} attempts failed: {last_error}")
    raise last_error
