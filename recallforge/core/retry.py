"""
Retry Utilities for Store Writes.

Provides retry logic with exponential backoff and jitter for transient
failures of the review store.

Architecture Context
--------------------
The scheduling engine itself never retries: it is a pure function. Retries
wrap the *whole* read → compute → write cycle in the review service, so each
attempt re-reads the last persisted item and recomputes the transition from
it. A cached result is never replayed, which would double-apply the ease
adjustment.

    ┌──────────────────┐
    │  ReviewService   │──→  with_retry(get → record_review → put)
    └──────────────────┘

Backoff Strategy
----------------
Delay increases exponentially: `base_delay * (exponential_base ^ attempt)`,
capped at max_delay, plus 0-25% random jitter.
"""

import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from recallforge.core.exceptions import RetryError
from recallforge.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.05  # seconds
    max_delay: float = 2.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    fatal_exceptions: Tuple[Type[Exception], ...] = ()


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    """Calculate delay for next retry attempt."""
    delay = base_delay * (exponential_base**attempt)
    delay = min(delay, max_delay)

    if jitter:
        delay += delay * 0.25 * random.random()

    return delay


def _handle_retry_attempt(
    exception: Exception,
    attempt: int,
    config: RetryConfig,
    func_name: str,
    on_retry: Optional[Callable[[Exception, int], None]],
) -> None:
    """
    Log, notify and sleep before the next attempt.

    Args:
        exception: Exception that triggered retry
        attempt: Current attempt number (0-based)
        config: Retry configuration
        func_name: Name of function being retried
        on_retry: Optional callback to invoke
    """
    if attempt >= config.max_attempts - 1:
        logger.error(
            f"All {config.max_attempts} attempts failed",
            error=str(exception),
            function=func_name,
        )
        return

    delay = calculate_delay(
        attempt,
        config.base_delay,
        config.max_delay,
        config.exponential_base,
        config.jitter,
    )
    logger.warning(
        f"Attempt {attempt + 1}/{config.max_attempts} failed, "
        f"retrying in {delay:.2f}s",
        error=str(exception),
        function=func_name,
    )

    if on_retry:
        on_retry(exception, attempt + 1)

    time.sleep(delay)


def call_with_retry(
    func: Callable[..., Any],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    **kwargs: Any,
) -> Any:
    """
    Call func, retrying on the configured exceptions.

    Fatal exceptions propagate immediately even when they are subclasses of a
    retryable exception.

    Returns:
        Function return value

    Raises:
        RetryError: If all attempts fail
    """
    config = config or RetryConfig()
    if config.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception: Optional[Exception] = None
    func_name = getattr(func, "__name__", repr(func))

    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except config.fatal_exceptions:
            raise
        except config.retryable_exceptions as e:
            last_exception = e
            _handle_retry_attempt(e, attempt, config, func_name, on_retry)

    raise RetryError(
        f"Failed after {config.max_attempts} attempts: {last_exception}",
        last_exception,
        config.max_attempts,
    )


def retry(
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    fatal_exceptions: Tuple[Type[Exception], ...] = (),
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including first try)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to delays
        retryable_exceptions: Exception types to retry on
        fatal_exceptions: Exception types that are never retried
        on_retry: Callback(exception, attempt) called before each retry

    Example:
        @retry(max_attempts=3, retryable_exceptions=(StorageError,))
        def save(item):
            store.put(item)
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        retryable_exceptions=retryable_exceptions or (Exception,),
        fatal_exceptions=fatal_exceptions,
    )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return call_with_retry(
                func, *args, config=config, on_retry=on_retry, **kwargs
            )

        return wrapper

    return decorator
