"""Exponential-backoff retry for provider calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 2000


def is_retryable(exc: BaseException) -> bool:
    """Errors opt out of retries with ``retryable=False``; anything else is retried."""
    return bool(getattr(exc, "retryable", True))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    retry_if: Callable[[BaseException], bool] = is_retryable,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
) -> T:
    """Run ``operation`` up to ``max_retries`` times in total.

    Attempt ``n`` failing (``n < max_retries``) is followed by a sleep of
    ``base_delay_ms * 2 ** (n - 1)`` milliseconds. The final failure, or the
    first non-retryable one, is re-raised unchanged.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    def _before_sleep(state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "AI provider attempt %s failed, retrying in %sms: %s",
            state.attempt_number,
            int(delay * 1000),
            exc,
        )
        if on_retry is not None and exc is not None:
            on_retry(state.attempt_number, exc, delay)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay_ms / 1000, exp_base=2),
        retry=retry_if_exception(retry_if),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise AssertionError("unreachable: tenacity reraises the final error")
