"""Bounded retry policies with fixed or linear backoff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retry policy failed."""

    def __init__(self, name: str, attempts: int, last_error: Exception):
        super().__init__(f"{name} failed after {attempts} attempts: {last_error}")
        self.name = name
        self.attempts = attempts
        self.last_error = last_error


def linear_backoff(step: float, base: float) -> Callable[[int], float]:
    """Backoff of step * attempt + base seconds, attempt counted from 0."""
    return lambda attempt: step * attempt + base


def fixed_backoff(seconds: float) -> Callable[[int], float]:
    """Backoff of the same number of seconds after every attempt."""
    return lambda attempt: seconds


def _retry_everything(exc: Exception) -> bool:
    return True


@dataclass
class RetryPolicy:
    """Runs a callable up to max_attempts times, sleeping between attempts."""

    max_attempts: int
    backoff: Callable[[int], float]
    retryable: Callable[[Exception], bool] = field(default=_retry_everything)
    name: str = "operation"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def run(self, fn: Callable[[], T], log: logging.Logger | None = None) -> T:
        """Call fn until it succeeds or attempts run out.

        Errors rejected by the retryable predicate propagate immediately.

        Raises:
            RetryExhaustedError: If every attempt failed
        """
        log = log or logger
        last_error: Exception | None = None

        for attempt in range(self.max_attempts):
            log.info(f"{self.name} attempt {attempt + 1}/{self.max_attempts}")
            try:
                return fn()
            except Exception as e:
                if not self.retryable(e):
                    raise
                last_error = e
                log.error(f"{self.name} attempt {attempt + 1} failed: {e}")

            if attempt + 1 < self.max_attempts:
                time.sleep(self.backoff(attempt))

        raise RetryExhaustedError(self.name, self.max_attempts, last_error)
