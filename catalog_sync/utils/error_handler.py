"""
Error handling utilities with exponential backoff retry logic.

Provides retry decorators and error classification for transient vs
permanent failures in feed downloads and PostgreSQL connections.
"""

import asyncio
import functools
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Type, Tuple

import aiohttp
import asyncpg
import structlog


logger = structlog.get_logger(__name__)


class ErrorCategory(Enum):
    """Error category classification"""
    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"
    RATE_LIMITED = "rate_limited"


@dataclass
class RetryConfig:
    """Configuration for retry behavior"""
    max_attempts: int = 3
    initial_delay: float = 0.5  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.2  # +/- 20%

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass
class RetryMetrics:
    """Metrics for retry operations"""
    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    retry_count: int = 0
    total_retry_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_timestamp: Optional[datetime] = None


# Any 5xx is retried as well
RETRYABLE_STATUS_CODES = {408}

# Retryable exception types
RETRYABLE_EXCEPTIONS = (
    # Network errors
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    OSError,
    # HTTP errors
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    aiohttp.ServerTimeoutError,
    # PostgreSQL errors
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)


# Non-retryable exception types
NON_RETRYABLE_EXCEPTIONS = (
    ValueError,
    TypeError,
    KeyError,
    AttributeError,
    RuntimeError,
)


def classify_error(exception: Exception) -> ErrorCategory:
    """
    Classify an exception as retryable or non-retryable.

    Args:
        exception: The exception to classify

    Returns:
        ErrorCategory indicating retry behavior
    """
    # Check HTTP status codes if available
    status_code = getattr(exception, "status", None)
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorCategory.RATE_LIMITED
        if status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600:
            return ErrorCategory.RETRYABLE
        if 400 <= status_code < 500:
            return ErrorCategory.NON_RETRYABLE

    # Check exception type
    if isinstance(exception, RETRYABLE_EXCEPTIONS):
        return ErrorCategory.RETRYABLE

    if isinstance(exception, NON_RETRYABLE_EXCEPTIONS):
        return ErrorCategory.NON_RETRYABLE

    # Check error message for common patterns
    error_msg = str(exception).lower()
    retryable_patterns = [
        'connection',
        'timeout',
        'unavailable',
        'temporary',
        'transient'
    ]

    if any(pattern in error_msg for pattern in retryable_patterns):
        return ErrorCategory.RETRYABLE

    return ErrorCategory.NON_RETRYABLE


def calculate_delay(
    attempt: int,
    config: RetryConfig
) -> float:
    """
    Calculate delay for retry attempt with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = config.initial_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter = random.uniform(-config.jitter_range, config.jitter_range)
        delay = delay * (1 + jitter)

    return max(0, delay)


def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    retryable_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    on_retry: Optional[Callable] = None,
    metrics: Optional[RetryMetrics] = None
):
    """
    Decorator for retrying operations with exponential backoff.

    Args:
        config: Retry configuration (uses defaults if None)
        retryable_exceptions: Exception types always retried, regardless
            of classification
        on_retry: Optional callback called on each retry
        metrics: Optional metrics object to track retry stats

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(RetryConfig(max_attempts=5))
        async def download_feed(url):
            ...
    """
    if config is None:
        config = RetryConfig()

    if retryable_exceptions is None:
        retryable_exceptions = ()

    if metrics is None:
        metrics = RetryMetrics()

    def _should_retry(error: Exception) -> Tuple[bool, ErrorCategory]:
        category = classify_error(error)
        if isinstance(error, retryable_exceptions):
            return True, category
        return category != ErrorCategory.NON_RETRYABLE, category

    def _record_failure(func_name: str, attempt: int, error: Exception) -> Optional[float]:
        """Record a failed attempt; return the delay before retrying, or None to re-raise."""
        metrics.last_error = str(error)
        metrics.last_error_timestamp = datetime.now(timezone.utc)

        retry, category = _should_retry(error)
        if not retry:
            logger.error(
                "non_retryable_error",
                function=func_name,
                attempt=attempt + 1,
                error_type=type(error).__name__,
                error=str(error),
            )
            metrics.failed_attempts += 1
            return None

        if attempt == config.max_attempts - 1:
            logger.error(
                "max_retries_exhausted",
                function=func_name,
                max_attempts=config.max_attempts,
                total_retry_duration_ms=metrics.total_retry_duration_ms,
                error_type=type(error).__name__,
                error=str(error),
            )
            metrics.failed_attempts += 1
            return None

        delay = calculate_delay(attempt, config)
        metrics.retry_count += 1
        metrics.total_retry_duration_ms += delay * 1000

        logger.warning(
            "retrying_after_error",
            function=func_name,
            attempt=attempt + 1,
            max_attempts=config.max_attempts,
            delay_seconds=round(delay, 3),
            error_type=type(error).__name__,
            error_category=category.value,
        )

        if on_retry:
            on_retry(attempt, error, delay)

        return delay

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(config.max_attempts):
                try:
                    metrics.total_attempts += 1
                    result = await func(*args, **kwargs)
                    metrics.successful_attempts += 1
                    return result
                except Exception as e:
                    delay = _record_failure(func.__name__, attempt, e)
                    if delay is None:
                        raise
                await asyncio.sleep(delay)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(config.max_attempts):
                try:
                    metrics.total_attempts += 1
                    result = func(*args, **kwargs)
                    metrics.successful_attempts += 1
                    return result
                except Exception as e:
                    delay = _record_failure(func.__name__, attempt, e)
                    if delay is None:
                        raise
                time.sleep(delay)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator
