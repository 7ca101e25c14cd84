"""Retry policy with exponential backoff for provider calls.

A single sequential flow: try, and on a retryable failure sleep
``initial_delay * backoff_factor ** attempt_index`` before the next try.
Failures marked non-retryable stop immediately and propagate as-is;
running out of attempts raises MAX_RETRIES_EXCEEDED.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.utils.errors import ProviderFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 60.0


def is_retryable(exception: BaseException) -> bool:
    """Anything not explicitly classified as non-retryable is retried."""
    if isinstance(exception, ProviderFailure):
        return exception.retryable
    return True


def _log_retry(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.info(
        f"[RETRY] Attempt {retry_state.attempt_number} failed: {exception}. "
        f"Retrying in {delay:.2f}s..."
    )


class RetryPolicy:
    """Runs an async operation with bounded retries."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize retry policy.

        Args:
            config: Retry configuration
            sleep: Coroutine used to wait between attempts
        """
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
    ) -> T:
        """Run ``operation`` up to ``max_retries + 1`` times.

        Args:
            operation: Zero-argument coroutine function
            max_retries: Overrides the configured retry count

        Returns:
            The first successful result

        Raises:
            ProviderFailure: MAX_RETRIES_EXCEEDED once attempts run out
            Exception: The original error when it is non-retryable
        """
        retries = self.config.max_retries if max_retries is None else max_retries

        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(
                multiplier=self.config.initial_delay,
                exp_base=self.config.backoff_factor,
                max=self.config.max_delay,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                try:
                    return await operation()
                except Exception as e:
                    if attempt.retry_state.attempt_number > retries:
                        logger.warning(
                            f"[RETRY] All {retries} retries exhausted. Last error: {e}"
                        )
                        raise ProviderFailure.max_retries_exceeded(retries, e) from e
                    if not is_retryable(e):
                        logger.error(
                            f"[RETRY] Non-retryable exception: {type(e).__name__}: {e}"
                        )
                    raise

        raise RuntimeError("Unexpected state in retry loop")
