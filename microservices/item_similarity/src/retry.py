"""
Retry decorator for rating reads and similarity writes.

Reliability guarantee: transient storage failures (HDFS hiccups, network
timeouts, lost executors while writing) are retried with exponential
back-off before the job fails.  Anything else, including
:class:`InputFormatError` and :class:`ConfigurationError`, propagates on the
first attempt.

Usage
-----
    @retry(max_retries=3, backoff_sec=2.0)
    def write_tsv(df, path):
        ...
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
)


def retry(
    max_retries: int = 3,
    backoff_sec: float = 1.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
) -> Callable:
    """Retry the decorated I/O call on *retryable_exceptions*.

    Parameters
    ----------
    max_retries : int
        Retries after the first attempt (0 disables retrying).
    backoff_sec : float
        Sleep before the first retry.
    backoff_factor : float
        Multiplier applied to the sleep after every retry.
    retryable_exceptions : tuple[type[BaseException], ...]
        Exception types considered transient.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = [backoff_sec * backoff_factor ** i for i in range(max_retries)]
            for attempt, delay in enumerate(delays, start=1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as exc:
                    logger.warning(
                        "[retry] %s attempt %d/%d failed (%s). Retrying in %.1fs …",
                        func.__name__, attempt, max_retries + 1, exc, delay,
                    )
                    time.sleep(delay)
            try:
                return func(*args, **kwargs)
            except retryable_exceptions as exc:
                logger.error(
                    "[retry] %s FAILED after %d attempt(s): %s",
                    func.__name__, max_retries + 1, exc,
                )
                raise

        return wrapper

    return decorator
