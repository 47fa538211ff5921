"""Capped exponential backoff for vendor API calls, built on tenacity.

``BackoffPolicy`` holds the budget and builds the tenacity strategies;
``call_with_retry`` drives them and takes the sleep function as an argument
so tests never wait.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import RetriesExhaustedError, TransientAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry budget: ``max_retries`` extra attempts after the first."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def wait(self) -> wait_exponential:
        """Waits base, 2*base, 4*base... seconds, never more than max_delay."""
        return wait_exponential(multiplier=self.base_delay, max=self.max_delay)

    def stop(self) -> stop_after_attempt:
        return stop_after_attempt(self.max_attempts)


@dataclass
class RetryOutcome(Generic[T]):
    value: T
    attempts: int
    failures: list[Exception] = field(default_factory=list)


def call_with_retry(
    func: Callable[[], T],
    policy: BackoffPolicy,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "vendor call",
) -> RetryOutcome[T]:
    """Call ``func`` until it succeeds or the policy gives up.

    Only TransientAPIError is retried; anything else propagates from the
    first attempt that raises it.

    Raises:
        PermanentAPIError: Immediately, without retrying
        RetriesExhaustedError: After the last transient failure
    """
    failures: list[Exception] = []

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        failures.append(error)
        logger.warning(f"{description} failed (attempt {retry_state.attempt_number}): {error}")

    def log_sleep(retry_state: RetryCallState) -> None:
        logger.info(
            f"Retrying {description} (attempt {retry_state.attempt_number + 1}/{policy.max_attempts}) "
            f"after {retry_state.next_action.sleep:.1f}s"
        )

    retrying = Retrying(
        retry=retry_if_exception_type(TransientAPIError),
        stop=policy.stop(),
        wait=policy.wait(),
        sleep=sleep,
        after=log_retry,
        before_sleep=log_sleep,
    )

    try:
        value = retrying(func)
    except RetryError as e:
        raise RetriesExhaustedError(e.last_attempt.exception(), e.last_attempt.attempt_number) from e

    return RetryOutcome(value=value, attempts=len(failures) + 1, failures=failures)
