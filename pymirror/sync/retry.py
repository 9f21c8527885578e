"""Bounded retries with a fixed delay for filesystem mutations."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from ..utils import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY_MS, MIN_RETRY_DELAY_MS

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """How many times, and how far apart, an operation is attempted."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    """Total attempts, including the first one (at least 1)"""

    delay_ms: int = DEFAULT_RETRY_DELAY_MS
    """Fixed delay between attempts in milliseconds (at least 10)"""

    retry_on: tuple[type[BaseException], ...] = (OSError,)
    """Exception types considered transient"""

    def __post_init__(self):
        """Clamp values to their floors."""
        if self.max_attempts < 1:
            self.max_attempts = 1
        if self.delay_ms < MIN_RETRY_DELAY_MS:
            self.delay_ms = MIN_RETRY_DELAY_MS

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0


class RetryExecutor:
    """Runs an operation until it succeeds or the attempt budget is spent.

    The delay between attempts is constant: the operations are local
    filesystem calls whose transient failures (sharing violations, virus
    scanner locks) clear quickly. When every attempt fails, the last
    exception is re-raised unchanged.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """Initialize retry executor.

        Args:
            policy: Retry policy (defaults to 3 attempts, 100 ms apart)
            sleep: Sleep function, replaceable in tests
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def execute(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke ``operation(*args, **kwargs)`` with retries.

        Returns:
            Whatever the operation returns on its first successful attempt

        Raises:
            The last exception raised by the operation once attempts run out,
            or immediately for exceptions outside ``policy.retry_on``.
        """
        attempts = self.policy.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return operation(*args, **kwargs)
            except self.policy.retry_on as e:
                if attempt >= attempts:
                    logger.debug(
                        "Giving up after %d attempt(s): %s", attempt, e
                    )
                    raise
                logger.debug(
                    "Attempt %d/%d failed, retrying in %d ms: %s",
                    attempt,
                    attempts,
                    self.policy.delay_ms,
                    e,
                )
                self._sleep(self.policy.delay_seconds)
        # range() is never empty because max_attempts >= 1
        raise AssertionError("unreachable")
