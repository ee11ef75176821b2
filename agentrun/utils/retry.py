"""
Retry helpers built on tenacity.

Provider calls are retried with bounded exponential backoff. A
``RateLimited`` error's ``retry_after`` hint raises the wait for that
attempt, still capped by ``max_wait``.
"""

import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from agentrun.domain.errors import AgentRunError, RateLimited
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Only errors flagged retryable (transient provider failures) are retried."""
    return isinstance(exc, AgentRunError) and exc.retryable


class wait_retry_after:
    """Exponential backoff that honours a provider ``retry_after`` hint."""

    def __init__(self, min_wait: float, max_wait: float, multiplier: float = 1.0):
        self.max_wait = max_wait
        self._exponential = wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait)

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._exponential(retry_state)
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, RateLimited) and exc.retry_after:
                delay = max(delay, exc.retry_after)
        return min(delay, self.max_wait)


def async_retrying(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
) -> AsyncRetrying:
    """
    Build an ``AsyncRetrying`` controller for provider calls.

    Usage:
        async for attempt in async_retrying(max_attempts=3):
            with attempt:
                response = await provider.complete(messages, params)
    """
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        wait=wait_retry_after(min_wait, max_wait),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
    )


__all__ = ["async_retrying", "is_retryable", "wait_retry_after"]
