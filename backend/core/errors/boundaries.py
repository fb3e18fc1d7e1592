"""Error Boundary Mappers

Store implementations sit behind a boundary: SQLAlchemy exceptions raised
inside are mapped to a store AppError before they reach the scheduler.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from functools import wraps
from typing import Awaitable, Callable, Generic, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .types import AppError, ErrorCode, ErrorContext, Err, Ok, Result
from .builders import (
    db_connection_failed,
    duplicate_key,
    internal_error,
    timeout_error,
    transaction_failed,
)

T = TypeVar("T")


class ErrorMapper(ABC, Generic[T]):
    """Abstract base for error mappers at module boundaries."""

    @abstractmethod
    def map_error(self, error: AppError) -> AppError:
        """Map internal error to boundary error."""

    @abstractmethod
    def map_exception(self, exc: Exception) -> AppError:
        """Map a raised exception to a boundary error."""

    def map_result(self, result: Result[T, AppError]) -> Result[T, AppError]:
        match result:
            case Ok(_):
                return result
            case Err(e):
                return Err(self.map_error(e))


class DatabaseErrorMapper(ErrorMapper[T]):
    """Maps SQLAlchemy exceptions to store error codes (E4xxx)."""

    def __init__(self, origin: str = "database"):
        self.origin = origin

    def map_error(self, error: AppError) -> AppError:
        if error.is_store_error:
            return error
        return error.with_context(origin=self.origin)

    def map_exception(self, exc: Exception) -> AppError:
        if isinstance(exc, IntegrityError):
            return self._map_integrity_error(exc)
        if isinstance(exc, OperationalError):
            return self._map_operational_error(exc)
        if isinstance(exc, SQLAlchemyError):
            return transaction_failed(str(exc), origin=self.origin).error.chain(exc)

        return internal_error(
            f"Database error: {exc}",
            origin=self.origin,
            cause=exc,
        ).error

    def _map_integrity_error(self, exc: IntegrityError) -> AppError:
        message = str(exc.orig) if exc.orig else str(exc)

        if "unique constraint" in message.lower() or "duplicate key" in message.lower():
            return duplicate_key(
                entity="record",
                field="id",
                value="unknown",
                origin=self.origin,
            ).error.chain(exc)

        return AppError(
            code=ErrorCode.E4013_CHECK_CONSTRAINT,
            message=f"Constraint violation: {message}",
            context=ErrorContext(origin=self.origin),
            cause=exc,
        )

    def _map_operational_error(self, exc: OperationalError) -> AppError:
        message = str(exc.orig) if exc.orig else str(exc)
        lowered = message.lower()

        if "timeout" in lowered or "database is locked" in lowered:
            return timeout_error("database query", 30.0, origin=self.origin).error.chain(exc)

        if "unable to open" in lowered or "connect" in lowered:
            return db_connection_failed(message, origin=self.origin).error.chain(exc)

        return transaction_failed(message, origin=self.origin).error.chain(exc)


def map_errors(mapper: ErrorMapper[T]):
    """Decorator to map errors at function boundaries.

    Usage:
        @map_errors(DatabaseErrorMapper("item_store"))
        async def fetch_by_id(self, item_id: int) -> Result[ItemRecord, AppError]:
            ...
    """
    def decorator(fn: Callable[..., Awaitable[Result[T, AppError]]]):
        @wraps(fn)
        async def wrapper(*args, **kwargs) -> Result[T, AppError]:
            try:
                result = await fn(*args, **kwargs)
            except SQLAlchemyError as e:
                return Err(mapper.map_exception(e))
            return mapper.map_result(result)
        return wrapper
    return decorator


def map_db_errors(origin: str = "database"):
    """Convenience decorator for database error mapping."""
    return map_errors(DatabaseErrorMapper(origin))
