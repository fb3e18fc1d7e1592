"""Resilience Patterns

Retry and timeout policies for store access.
"""
from .retry import (
    BackoffStrategy,
    CombinedPolicy,
    RetryConfig,
    RetryPolicy,
    RetryResult,
    TimeoutPolicy,
)

__all__ = [
    "BackoffStrategy",
    "CombinedPolicy",
    "RetryConfig",
    "RetryPolicy",
    "RetryResult",
    "TimeoutPolicy",
]
