"""Opt-in retry helpers for callers of path selectors.

Selectors fail fast: a storage error surfaces as StorageIOError and the
checkpoint stays where it was. Whether to retry is the caller's decision,
and these helpers are how a caller opts in.

Implementation: Uses tenacity library internally for retry logic.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import tenacity
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

__all__ = ["with_retry", "RetryConfig", "retry_operation"]

F = TypeVar("F", bound=Callable[..., Any])


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        exponential: bool = True,
        jitter: bool = True,
        retry_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.exponential = exponential
        self.jitter = jitter
        self.retry_exceptions = retry_exceptions or (Exception,)

    @classmethod
    def none(cls) -> "RetryConfig":
        """No retry - fail immediately."""
        return cls(max_attempts=1)

    @classmethod
    def default(cls) -> "RetryConfig":
        """Default retry: 3 attempts with exponential backoff."""
        return cls()

    def wait_strategy(self) -> wait_base:
        """Build the tenacity wait strategy for this configuration."""
        strategy: wait_base
        if self.exponential:
            # backoff_seconds * 2^(attempt-1)
            strategy = tenacity.wait_exponential(
                multiplier=self.backoff_seconds, min=self.backoff_seconds
            )
        else:
            strategy = tenacity.wait_fixed(self.backoff_seconds)

        if self.jitter:
            strategy = strategy + tenacity.wait_random(0, self.backoff_seconds * 0.5)

        return strategy

    def retrying(self, log: logging.Logger, operation_name: str) -> tenacity.Retrying:
        """Build a tenacity Retrying object that logs each failed attempt."""

        def before_sleep_handler(retry_state: tenacity.RetryCallState) -> None:
            exception = retry_state.outcome.exception() if retry_state.outcome else None
            log.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                operation_name,
                retry_state.attempt_number,
                self.max_attempts,
                exception,
                retry_state.next_action.sleep if retry_state.next_action else 0,
            )

        return tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=self.wait_strategy(),
            retry=tenacity.retry_if_exception_type(self.retry_exceptions),
            before_sleep=before_sleep_handler,
            reraise=True,
        )


def retry_operation(
    operation: Callable[[], Any],
    config: RetryConfig,
    operation_name: str = "operation",
) -> Any:
    """Execute an operation with retry logic.

    Example:
        selection = retry_operation(
            lambda: selector.select_next_batch(checkpoint),
            RetryConfig(max_attempts=3, retry_exceptions=(StorageIOError,)),
            "batch selection",
        )
    """
    try:
        return config.retrying(logger, operation_name)(operation)
    except Exception:
        logger.error(
            "%s failed after %d attempts",
            operation_name,
            config.max_attempts,
        )
        raise


def with_retry(
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
    exponential: bool = True,
    jitter: bool = True,
    retry_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
) -> Callable[[F], F]:
    """Opt-in retry decorator for flaky operations.

    Args:
        max_attempts: Maximum number of attempts (default 3)
        backoff_seconds: Base delay between attempts (default 1.0)
        exponential: Use exponential backoff (default True)
        jitter: Add random jitter to backoff (default True)
        retry_exceptions: Only retry on these exceptions (default: all)

    Example:
        @with_retry(max_attempts=5, retry_exceptions=(StorageIOError,))
        def next_batch(checkpoint):
            return selector.select_next_batch(checkpoint)
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        backoff_seconds=backoff_seconds,
        exponential=exponential,
        jitter=jitter,
        retry_exceptions=retry_exceptions,
    )

    def decorator(fn: F) -> F:
        fn_logger = logging.getLogger(fn.__module__)

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            retrying = config.retrying(fn_logger, fn.__name__)
            return retrying(fn, *args, **kwargs)

        return wrapper  # type: ignore

    return decorator
