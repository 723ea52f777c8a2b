"""
Bounded exponential backoff for LLM calls.

Only transient failures are retried: rate limiting, overloaded/5xx upstream
responses, timeouts and dropped connections. Anything that looks like a bad
request is raised on the first attempt.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import anthropic
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from venue_booking.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")

JITTER_SECONDS = 0.2


def is_retryable(error: BaseException) -> bool:
    """Classify an exception raised by an LLM call as transient or not."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if isinstance(error, (anthropic.RateLimitError, anthropic.APIConnectionError)):
        # APITimeoutError is a subclass of APIConnectionError
        return True
    if isinstance(error, anthropic.InternalServerError):
        return True
    if isinstance(error, anthropic.APIStatusError):
        return error.status_code == 429 or error.status_code >= 500
    return False


def backoff_wait(base_delay: float, max_delay: float, jitter: float = JITTER_SECONDS):
    """``base * 2**(attempt-1)`` capped at ``max_delay``, plus up to ``jitter`` seconds."""
    return wait_exponential(multiplier=base_delay, max=max_delay) + wait_random(0, jitter)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Await ``fn()`` up to ``max_attempts`` times.

    The last error is re-raised unchanged once attempts run out, or
    immediately when it is not retryable.
    """
    max_attempts = max_attempts or settings.LLM_MAX_RETRIES
    base_delay = settings.LLM_RETRY_BASE_DELAY if base_delay is None else base_delay
    max_delay = settings.LLM_RETRY_MAX_DELAY if max_delay is None else max_delay

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(max_attempts),
        wait=backoff_wait(base_delay, max_delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        sleep=sleep or asyncio.sleep,
    )
    return await retrying(fn)
