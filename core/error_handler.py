"""Utility decorators and helpers for consistent error handling.

Besides the logging decorators this module hosts the bounded
retry-with-backoff primitive used to wait for eventually consistent
collaborators, and the request-timeout guard that turns slow collaborator
calls into ``RequestTimeoutError``.
"""
from __future__ import annotations

import asyncio
import functools
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterator, Optional, TypeVar

from loguru import logger

from core.exceptions import ConfigurationError, RequestTimeoutError

T = TypeVar('T')


def handle_exceptions(
    logger_instance=logger,
    default_return: Optional[Any] = None,
    reraise: bool = False,
    message: Optional[str] = None
):
    """Decorator to handle exceptions consistently.

    Args:
        logger_instance: Logger to use for error logging
        default_return: Value to return on exception
        reraise: Whether to re-raise the exception after logging
        message: Custom error message prefix
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_msg = message or f"Error in {func.__name__}"
                logger_instance.error(f"{error_msg}: {e}")
                if reraise:
                    raise
                return default_return
        return wrapper
    return decorator


def log_execution_time(logger_instance=logger, level: str = "DEBUG"):
    """Decorator to log function execution time.

    Args:
        logger_instance: Logger to use
        level: Log level (DEBUG, INFO, etc.)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start_time
                log_func = getattr(logger_instance, level.lower(), logger_instance.debug)
                log_func(f"{func.__name__} executed in {elapsed:.3f}s")
        return wrapper
    return decorator


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule with multiplicative backoff.

    Attributes:
        max_attempts: Number of attempts, each preceded by a delay
        initial_delay: Delay in seconds before the first attempt
        backoff: Multiplier applied to the delay after each attempt
        max_delay: Upper bound for any single delay
    """
    max_attempts: int = 1
    initial_delay: float = 0.5
    backoff: float = 2.0
    max_delay: float = 5.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("Retry delays must not be negative")
        if self.backoff < 1.0:
            raise ConfigurationError(f"backoff must be >= 1.0, got {self.backoff}")

    def delays(self) -> Iterator[float]:
        """Yield the delay preceding each attempt."""
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            yield min(delay, self.max_delay)
            delay *= self.backoff

    @property
    def total_delay(self) -> float:
        return sum(self.delays())


@dataclass(frozen=True)
class PollOutcome(Generic[T]):
    """Last value observed by ``poll_until`` and whether it satisfied the check."""
    value: Optional[T]
    satisfied: bool
    attempts: int


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PollOutcome[T]:
    """Wait, fetch, and check until the predicate holds or attempts run out.

    Never retries beyond ``policy.max_attempts``. Exceptions raised by
    ``fetch`` propagate to the caller.
    """
    value: Optional[T] = None
    attempts = 0
    for delay in policy.delays():
        await sleep(delay)
        attempts += 1
        value = await fetch()
        if value is not None and predicate(value):
            return PollOutcome(value=value, satisfied=True, attempts=attempts)
        logger.debug(f"poll attempt {attempts}/{policy.max_attempts} not yet satisfied")
    return PollOutcome(value=value, satisfied=False, attempts=attempts)


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float], operation: str = "request") -> T:
    """Await ``awaitable`` and raise ``RequestTimeoutError`` if it takes too long."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise RequestTimeoutError(f"{operation} timed out after {timeout:.1f}s") from e
