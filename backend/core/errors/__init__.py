"""Monadic Error Handling

- Result[T, E]: Ok | Err container returned by stores and the scheduler
- AppError: typed error with code, message, metadata and context
- ErrorCode: hierarchical code taxonomy with HTTP status mapping
- Builders for each error family

Usage:
    from core.errors import Ok, Err, Result, AppError, not_found

    async def fetch_by_id(item_id: int) -> Result[ItemRecord, AppError]:
        record = self._records.get(item_id)
        if record is None:
            return not_found("Item", item_id, origin="item_store")
        return Ok(record)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    from_exception,
    sequence_results,
)

from .builders import (
    timeout_error,
    validation_error,
    out_of_range,
    db_error,
    not_found,
    duplicate_key,
    db_connection_failed,
    transaction_failed,
    business_error,
    state_conflict,
    concurrent_mutation,
    load_superseded,
    internal_error,
)

from .boundaries import (
    ErrorMapper,
    DatabaseErrorMapper,
    map_errors,
    map_db_errors,
)

from .handlers import (
    AppErrorException,
    register_error_handlers,
    result_to_response,
    raise_result,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "from_exception",
    "sequence_results",
    "timeout_error",
    "validation_error",
    "out_of_range",
    "db_error",
    "not_found",
    "duplicate_key",
    "db_connection_failed",
    "transaction_failed",
    "business_error",
    "state_conflict",
    "concurrent_mutation",
    "load_superseded",
    "internal_error",
    "ErrorMapper",
    "DatabaseErrorMapper",
    "map_errors",
    "map_db_errors",
    "AppErrorException",
    "register_error_handlers",
    "result_to_response",
    "raise_result",
]
