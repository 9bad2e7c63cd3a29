"""
Retry Policy Module

Classifies collaborator failures as transient or fatal and re-runs an async
operation with exponential backoff. The loop itself is tenacity's
AsyncRetrying state machine (attempt counter + last outcome); the sleep
function is injectable so tests can run the full retry sequence without real
timers.

Example Usage:
    from scholar_matcher.utils.retry_policy import RetryPolicy

    policy = RetryPolicy(max_retries=2, base_delay=1.0)
    outcome = await policy.run(lambda: pipeline.analyze(record, interests_text))
"""

import asyncio
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from scholar_matcher.errors import (
    ConfigurationError,
    EmptyProfileError,
    MalformedResponseError,
    TransportError,
)
from scholar_matcher.utils.logger import get_logger

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
OnRetry = Callable[[int, BaseException, float], Any]

RETRIABLE_MESSAGE = re.compile(
    r"rate limit|too many requests|temporarily unavailable|service unavailable"
    r"|timeout|network|\b(?:429|500|502|503|504)\b",
    re.IGNORECASE,
)

FATAL_ERRORS = (EmptyProfileError, MalformedResponseError, ConfigurationError)


def _status_code(error: BaseException) -> Optional[int]:
    """Extract an HTTP-like status code from an exception, if it carries one."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    return None


def is_retriable(error: BaseException) -> bool:
    """Decide whether a failed attempt is worth repeating.

    Retriable:
        - HTTP-like status 429 or >= 500
        - TransportError without a status (connection reset, DNS failure)
        - built-in TimeoutError / ConnectionError, httpx transport errors
        - messages mentioning rate limits, unavailability, timeouts, network
          problems, or a bare 429/500/502/503/504

    Fatal: EmptyProfileError, MalformedResponseError, ConfigurationError, and
    anything else, including other status codes whose message does not match.
    """
    if isinstance(error, FATAL_ERRORS):
        return False

    status = _status_code(error)
    if status is not None and (status == 429 or status >= 500):
        return True

    if status is None and isinstance(
        error, (TransportError, TimeoutError, ConnectionError, httpx.TransportError)
    ):
        return True

    return bool(RETRIABLE_MESSAGE.search(str(error)))


class RetryPolicy:
    """Exponential-backoff retry around a whole async operation."""

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 1.0,
        sleep: Optional[Sleep] = None,
        correlation_id: Optional[str] = None,
    ):
        """
        Initialize RetryPolicy.

        Args:
            max_retries: Retries after the first attempt (total attempts = max_retries + 1)
            base_delay: Delay in seconds before the first retry
            sleep: Async sleep function (default: asyncio.sleep)
            correlation_id: Correlation ID for logging
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay < 0:
            raise ValueError("base_delay must be >= 0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep: Sleep = sleep or asyncio.sleep
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="batch_analysis",
            component="retry_policy",
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retriable(self, error: BaseException) -> bool:
        return is_retriable(error)

    def backoff_delay(self, attempt_number: int) -> float:
        """Delay after the given (1-indexed) failed attempt: base * 2^(n-1)."""
        if attempt_number < 1:
            raise ValueError("attempt_number is 1-indexed")
        return self.base_delay * (2 ** (attempt_number - 1))

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.backoff_delay(retry_state.attempt_number)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[OnRetry] = None,
    ) -> T:
        """
        Run an async operation, retrying transient failures.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            on_retry: Optional callback(attempt_number, error, delay) before each backoff

        Returns:
            The operation's result

        Raises:
            The last exception unchanged when it is fatal or the budget is exhausted
        """

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self.logger.warning(
                "Retrying after transient failure",
                attempt=retry_state.attempt_number,
                max_attempts=self.max_attempts,
                delay=delay,
                error_type=type(error).__name__,
                error=str(error),
            )
            if on_retry is not None and error is not None:
                on_retry(retry_state.attempt_number, error, delay)

        async def attempt() -> T:
            return await operation()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.is_retriable),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

        return await retrying(attempt)
