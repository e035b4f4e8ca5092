"""
Retry helpers for calls to external services.

A RetryPolicy describes how many attempts to make and how long to wait
between them. The classifier retries with a fixed pause; the policy also
supports exponential growth with jitter for other callers.

Responsibility: Retry policies and the async retry loop
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar
import logging

import httpx

from ..config import ClassifierConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')

SleepFunc = Callable[[float], Awaitable[None]]


class RetryError(Exception):
    """Every attempt allowed by the policy failed"""

    def __init__(self, message: str, last_exception: Optional[Exception] = None, attempts: int = 0):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and pause schedule.

    Attributes:
        max_attempts: Total attempts, the first one included
        base_delay: Pause after the first failure, in seconds
        exponential_base: Growth factor per failure (1.0 keeps the pause fixed)
        max_delay: Ceiling on any single pause
        jitter: Shrink each pause by a random factor in [0.5, 1.0]
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    exponential_base: float = 2.0
    max_delay: float = 60.0
    jitter: bool = True

    @classmethod
    def fixed(cls, max_attempts: int, delay: float) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, base_delay=delay, exponential_base=1.0, jitter=False)

    @classmethod
    def for_classifier(cls, config: ClassifierConfig) -> "RetryPolicy":
        """Fixed pause between classifier attempts, as configured."""
        return cls.fixed(config.max_retries, config.retry_delay_seconds)

    def delay_for(self, failures: int) -> float:
        """
        Pause before the next attempt.

        Args:
            failures: Failed attempts so far, minus one (0 after the first failure)

        Example:
            >>> RetryPolicy(base_delay=1.0, jitter=False).delay_for(2)  # 4.0
            >>> RetryPolicy.fixed(3, 2.0).delay_for(2)  # 2.0
        """
        delay = min(self.base_delay * (self.exponential_base ** failures), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


def is_transient(
    exception: Exception,
    retryable_exceptions: Tuple[Type[Exception], ...] = ()
) -> bool:
    """
    Whether a failure is worth another attempt.

    Timeouts, transport errors, HTTP 5xx and 429 always are; callers add
    their own exception types through retryable_exceptions.
    """
    if retryable_exceptions and isinstance(exception, retryable_exceptions):
        return True
    if isinstance(exception, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        code = exception.response.status_code
        return code >= 500 or code == 429
    return False


async def retry_async(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
    retryable_exceptions: Tuple[Type[Exception], ...] = (),
    sleep: Optional[SleepFunc] = None,
    log: Optional[logging.Logger] = None,
) -> T:
    """
    Call func until it succeeds or the policy runs out of attempts.

    Non-transient exceptions propagate immediately.

    Args:
        func: Coroutine factory, called once per attempt
        policy: Attempt budget and pause schedule
        retryable_exceptions: Extra exception types treated as transient
        sleep: Awaitable sleep (tests pass a recorder)
        log: Logger for attempt messages

    Raises:
        RetryError: When every attempt failed
    """
    log = log or logger
    do_sleep = sleep or asyncio.sleep

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await func()
        except Exception as e:
            if not is_transient(e, retryable_exceptions):
                log.warning(f"Non-retryable error: {e}")
                raise

            if attempt == policy.max_attempts:
                log.error(f"Giving up after {attempt} attempts: {e}")
                raise RetryError(
                    f"Failed after {attempt} attempts: {e}",
                    last_exception=e,
                    attempts=attempt,
                ) from e

            delay = policy.delay_for(attempt - 1)
            log.warning(f"Attempt {attempt}/{policy.max_attempts} failed: {e}. Retrying in {delay:.2f}s")
            await do_sleep(delay)
            continue

        if attempt > 1:
            log.info(f"Succeeded on attempt {attempt}")
        return result

    raise RetryError("No attempt allowed by the retry policy", attempts=0)
