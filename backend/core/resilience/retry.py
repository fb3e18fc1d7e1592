"""Retry Policies with Exponential Backoff and Jitter

Store reads issued while loading a session are transient-failure prone
(locked SQLite file, dropped connection). They are retried here rather
than inside the stores, so each store call stays a single attempt.
"""
from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Awaitable, Callable, Generic, TypeVar

from core.errors import (
    AppError,
    ErrorCode,
    Err,
    Ok,
    Result,
    timeout_error,
)

T = TypeVar("T")


class BackoffStrategy(Enum):
    CONSTANT = auto()
    EXPONENTIAL = auto()
    EXPONENTIAL_JITTER = auto()


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay_seconds: float = 0.2
    max_delay_seconds: float = 5.0
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL_JITTER
    jitter_factor: float = 0.5
    multiplier: float = 2.0
    retryable_codes: frozenset[ErrorCode] = field(
        default_factory=lambda: frozenset({
            ErrorCode.E1002_TIMEOUT,
            ErrorCode.E4000_DATABASE_GENERIC,
            ErrorCode.E4001_CONNECTION_FAILED,
            ErrorCode.E4002_QUERY_FAILED,
            ErrorCode.E4003_TRANSACTION_FAILED,
        })
    )


@dataclass
class RetryAttempt:
    attempt_number: int
    started_at: datetime
    delay_seconds: float
    error: AppError | None = None


@dataclass
class RetryResult(Generic[T]):
    """Final result of a retried operation with its attempt history."""
    result: Result[T, AppError]
    attempts: list[RetryAttempt]
    total_duration_seconds: float

    @property
    def succeeded(self) -> bool:
        return self.result.is_ok()

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class BackoffCalculator(ABC):
    @abstractmethod
    def calculate(self, attempt: int, config: RetryConfig) -> float:
        """Delay in seconds after the given (1-indexed) attempt."""


class ConstantBackoff(BackoffCalculator):
    def calculate(self, attempt: int, config: RetryConfig) -> float:
        return min(config.base_delay_seconds, config.max_delay_seconds)


class ExponentialBackoff(BackoffCalculator):
    def calculate(self, attempt: int, config: RetryConfig) -> float:
        delay = config.base_delay_seconds * (config.multiplier ** (attempt - 1))
        return min(delay, config.max_delay_seconds)


class ExponentialJitterBackoff(BackoffCalculator):
    """Exponential backoff with equal jitter (±jitter_factor/2)."""

    def calculate(self, attempt: int, config: RetryConfig) -> float:
        base = config.base_delay_seconds * (config.multiplier ** (attempt - 1))
        base = min(base, config.max_delay_seconds)

        jitter_range = base * config.jitter_factor
        jitter = random.uniform(-jitter_range / 2, jitter_range / 2)

        return max(0, min(base + jitter, config.max_delay_seconds))


def get_backoff_calculator(strategy: BackoffStrategy) -> BackoffCalculator:
    calculators: dict[BackoffStrategy, BackoffCalculator] = {
        BackoffStrategy.CONSTANT: ConstantBackoff(),
        BackoffStrategy.EXPONENTIAL: ExponentialBackoff(),
        BackoffStrategy.EXPONENTIAL_JITTER: ExponentialJitterBackoff(),
    }
    return calculators[strategy]


class RetryPolicy(Generic[T]):
    """Retries a Result-returning coroutine while its error code is retryable.

    Usage:
        policy = RetryPolicy(RetryConfig(max_attempts=3))
        outcome = await policy.execute(lambda: store.fetch_due(50, now))
        match outcome.result:
            case Ok(records):
                ...
            case Err(error):
                log.error("fetch_failed", attempts=outcome.attempt_count)
    """

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()
        self._calculator = get_backoff_calculator(self.config.strategy)

    def should_retry(self, error: AppError, attempt: int) -> bool:
        if attempt >= self.config.max_attempts:
            return False
        return error.code in self.config.retryable_codes

    async def execute(
        self,
        fn: Callable[[], Awaitable[Result[T, AppError]]],
        on_retry: Callable[[int, AppError, float], Awaitable[None]] | None = None,
    ) -> RetryResult[T]:
        attempts: list[RetryAttempt] = []
        start_time = datetime.now(timezone.utc)

        def _finish(result: Result[T, AppError]) -> RetryResult[T]:
            end_time = datetime.now(timezone.utc)
            return RetryResult(
                result=result,
                attempts=attempts,
                total_duration_seconds=(end_time - start_time).total_seconds(),
            )

        for attempt in range(1, self.config.max_attempts + 1):
            attempt_start = datetime.now(timezone.utc)
            delay = self._calculator.calculate(attempt, self.config)

            result = await fn()

            match result:
                case Ok(_):
                    attempts.append(RetryAttempt(attempt, attempt_start, delay))
                    return _finish(result)

                case Err(error):
                    attempts.append(RetryAttempt(attempt, attempt_start, delay, error))

                    if not self.should_retry(error, attempt):
                        return _finish(result)

                    if on_retry:
                        await on_retry(attempt, error, delay)

                    await asyncio.sleep(delay)

        return _finish(Err(AppError(
            code=ErrorCode.E9001_UNEXPECTED_ERROR,
            message="Retry policy exhausted",
        )))


class TimeoutPolicy(Generic[T]):
    """Bounds a single attempt; a timeout becomes Err(E1002_TIMEOUT)."""

    def __init__(self, timeout_seconds: float, operation_name: str = "operation"):
        self.timeout_seconds = timeout_seconds
        self.operation_name = operation_name

    async def execute(
        self,
        fn: Callable[[], Awaitable[Result[T, AppError]]],
    ) -> Result[T, AppError]:
        try:
            return await asyncio.wait_for(fn(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return timeout_error(
                self.operation_name,
                self.timeout_seconds,
                origin="timeout_policy",
            )


class CombinedPolicy(Generic[T]):
    """Timeout per attempt, retried under a RetryPolicy."""

    def __init__(
        self,
        timeout_seconds: float,
        retry_config: RetryConfig | None = None,
        operation_name: str = "operation",
    ):
        self.timeout = TimeoutPolicy[T](timeout_seconds, operation_name)
        self.retry = RetryPolicy[T](retry_config)

    async def execute(
        self,
        fn: Callable[[], Awaitable[Result[T, AppError]]],
        on_retry: Callable[[int, AppError, float], Awaitable[None]] | None = None,
    ) -> RetryResult[T]:
        async def timed_fn() -> Result[T, AppError]:
            return await self.timeout.execute(fn)

        return await self.retry.execute(timed_fn, on_retry)
