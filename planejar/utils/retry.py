"""
Retry logic with exponential backoff for external service calls.
"""
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)
import logging
from typing import Callable

logger = logging.getLogger(__name__)


# Retry decorator for S3 operations
retry_s3 = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(RuntimeError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


# Retry decorator for email sending
retry_email = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=4, max=30),  # 4s, 8s, 16s
    retry=retry_if_exception_type(Exception),
    before_sleep=before_sleep_log(logger, logging.ERROR),
    reraise=True,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: int = 1,
    max_wait: int = 10,
    exception_types: tuple = (Exception,)
) -> Callable:
    """
    Custom retry decorator factory.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time in seconds
        max_wait: Maximum wait time in seconds
        exception_types: Tuple of exception types to retry on

    The last exception is re-raised once attempts are exhausted.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.INFO),
        reraise=True,
    )
