"""Retry utilities with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import is_retryable_error

if TYPE_CHECKING:
    from ..core.cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class RetryState:
    """Attempt bookkeeping for one retried operation."""

    attempt: int = 0
    delay: float = 0.0
    last_error: BaseException | None = None


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    multiplier: float = 2.0,
) -> float:
    """Delay before retry number ``attempt`` (1-based)."""
    return min(base_delay * (multiplier ** (attempt - 1)), max_delay)


async def retry_with_backoff(
    func: Callable[..., Awaitable[Any]],
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    *args,
    multiplier: float = 2.0,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    cancel_token: CancellationToken | None = None,
    **kwargs,
) -> Any:
    """
    Retry a function with exponential backoff.

    Only failures accepted by ``should_retry`` are retried; anything else is
    raised immediately. The delay between attempts is awaited, and wakes early
    if ``cancel_token`` trips.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retries after the first attempt (default: 2)
        base_delay: Base delay in seconds for exponential backoff (default: 1.0)
        max_delay: Maximum delay in seconds (default: 10.0)
        *args: Positional arguments to pass to func
        multiplier: Backoff multiplier applied per attempt (default: 2.0)
        should_retry: Classifier deciding whether a failure is transient
        cancel_token: Optional cancellation token checked before every attempt
        **kwargs: Keyword arguments to pass to func

    Returns:
        Result from func

    Raises:
        Exception: The last failure once retries are exhausted, or the first
            non-retryable failure
    """
    state = RetryState()
    while True:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            state.last_error = e
            if state.attempt >= max_retries or not should_retry(e):
                raise
            state.attempt += 1
            state.delay = compute_backoff_delay(state.attempt, base_delay, max_delay, multiplier)
            logger.warning(
                "Retryable failure (attempt %d/%d), retrying in %.2fs: %s",
                state.attempt,
                max_retries,
                state.delay,
                e,
            )
            if cancel_token is not None:
                await cancel_token.sleep(state.delay)
            else:
                await asyncio.sleep(state.delay)
