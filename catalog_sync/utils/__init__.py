"""Shared utilities for catalog sync."""

from .error_handler import (
    ErrorCategory,
    RetryConfig,
    RetryMetrics,
    classify_error,
    calculate_delay,
    retry_with_backoff,
)

__all__ = [
    "ErrorCategory",
    "RetryConfig",
    "RetryMetrics",
    "classify_error",
    "calculate_delay",
    "retry_with_backoff",
]
