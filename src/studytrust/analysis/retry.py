"""
Provider Retry Policy

Bounded exponential backoff with jitter around a single provider call.
Only errors flagged `retryable` (rate limits, timeouts, unavailability)
are retried; everything else fails on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from studytrust.config import RetrySettings
from studytrust.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, ProviderError) and error.retryable


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    settings: RetrySettings | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[RetryCallState], None] | None = None,
) -> T:
    """
    Await `fn()` with retries.

    Waits `base_delay * 2**(attempt - 1) + uniform(0, max_jitter)` seconds
    between attempts and re-raises the last error once retries run out.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        settings: Retry limits (defaults to RetrySettings()).
        sleep: Sleep coroutine (tests pass a no-op).
        on_retry: Called before each sleep, e.g. to count retries.

    Returns:
        The first successful result.
    """
    settings = settings or RetrySettings()
    log_before_sleep = before_sleep_log(logger, logging.WARNING)

    def before_sleep(retry_state: RetryCallState) -> None:
        log_before_sleep(retry_state)
        if on_retry is not None:
            on_retry(retry_state)

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(settings.max_retries + 1),
        wait=wait_exponential(multiplier=settings.base_delay, exp_base=2)
        + wait_random(0, settings.max_jitter),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await fn()

    # AsyncRetrying either returns from inside the loop or re-raises
    raise RuntimeError("retry loop exited without a result")
