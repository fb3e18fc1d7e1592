"""Error Builders

Constructors for the typed errors the scheduler, stores and API produce.
"""
from .types import AppError, ErrorCode, ErrorContext, Err


# =============================================================================
# Timeouts (E1xxx)
# =============================================================================

def timeout_error(
    operation: str, timeout_seconds: float, origin: str = ""
) -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E1002_TIMEOUT,
        message=f"Operation '{operation}' timed out after {timeout_seconds}s",
        context=ErrorContext(origin=origin),
        metadata={"operation": operation, "timeout_seconds": timeout_seconds},
    ))


# =============================================================================
# Validation Errors (E2xxx)
# =============================================================================

def validation_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC,
    field: str | None = None,
    value: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    meta = {"field": field, "value": value, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
    ))


def out_of_range(
    field: str,
    value: int | float,
    min_val: int | float | None = None,
    max_val: int | float | None = None,
    origin: str = "",
) -> Err[AppError]:
    bounds = []
    if min_val is not None:
        bounds.append(f">= {min_val}")
    if max_val is not None:
        bounds.append(f"<= {max_val}")
    msg = f"Value {value} for '{field}' out of range ({', '.join(bounds)})"
    return validation_error(
        msg,
        code=ErrorCode.E2003_OUT_OF_RANGE,
        field=field,
        value=str(value),
        min=min_val,
        max=max_val,
        origin=origin,
    )


# =============================================================================
# Store Errors (E4xxx)
# =============================================================================

def db_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E4000_DATABASE_GENERIC,
    table: str | None = None,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    meta = {"table": table, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
        cause=cause,
    ))


def not_found(
    entity: str,
    id: str | int | None = None,
    origin: str = "",
) -> Err[AppError]:
    msg = f"{entity} not found"
    if id is not None:
        msg += f": {id}"
    return db_error(
        msg,
        code=ErrorCode.E4010_NOT_FOUND,
        entity=entity,
        entity_id=str(id) if id is not None else None,
        origin=origin,
    )


def duplicate_key(
    entity: str, field: str, value: str, origin: str = ""
) -> Err[AppError]:
    return db_error(
        f"{entity} with {field}='{value}' already exists",
        code=ErrorCode.E4011_DUPLICATE_KEY,
        entity=entity,
        field=field,
        value=value,
        origin=origin,
    )


def db_connection_failed(reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Database connection failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4001_CONNECTION_FAILED, origin=origin)


def transaction_failed(reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Database transaction failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4003_TRANSACTION_FAILED, origin=origin)


# =============================================================================
# Scheduling / Session Errors (E5xxx)
# =============================================================================

def business_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E5000_BUSINESS_GENERIC,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata=metadata,
    ))


def state_conflict(
    entity: str, current_state: str, required_state: str, origin: str = ""
) -> Err[AppError]:
    return business_error(
        f"{entity} is in '{current_state}' state, requires '{required_state}'",
        code=ErrorCode.E5002_STATE_CONFLICT,
        entity=entity,
        current_state=current_state,
        required_state=required_state,
        origin=origin,
    )


def concurrent_mutation(item_id: int, origin: str = "") -> Err[AppError]:
    return business_error(
        f"Item {item_id} changed in the store since it was read; last write wins",
        code=ErrorCode.E5005_CONCURRENT_MUTATION,
        item_id=item_id,
        origin=origin,
    )


def load_superseded(generation: int, current: int, origin: str = "") -> Err[AppError]:
    return business_error(
        f"Session load {generation} superseded by load {current}",
        code=ErrorCode.E5006_LOAD_SUPERSEDED,
        generation=generation,
        current_generation=current,
        origin=origin,
    )


# =============================================================================
# Internal Errors (E9xxx)
# =============================================================================

def internal_error(
    message: str,
    *,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E9001_UNEXPECTED_ERROR,
        message=message,
        context=ErrorContext(origin=origin),
        metadata=metadata,
        cause=cause,
    ))
