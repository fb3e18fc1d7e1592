"""Structured Logging for the Recall Backend

- Colored, human-readable dev output
- JSON structured production output
- Correlation IDs bound per request
- Domain loggers (api, engine, db, srs, session)
"""
import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

SERVICE_NAME = "recall-backend"
SERVICE_VERSION = "0.1.0"

# Request-scoped data (correlation ID, session generation, ...)
request_context: ContextVar[dict] = ContextVar("request_context", default={})


def _add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that injects request context into log events."""
    ctx = request_context.get()
    if ctx:
        event_dict.update(ctx)
    return event_dict


def _censor_sensitive_keys(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that redacts sensitive information."""
    sensitive_keys = {"password", "token", "secret", "authorization", "cookie"}

    def _redact(obj, depth: int = 0):
        if depth > 5:
            return obj
        if isinstance(obj, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in sensitive_keys else _redact(v, depth + 1)
                for k, v in obj.items()
            }
        if isinstance(obj, list):
            return [_redact(item, depth + 1) for item in obj]
        return obj

    return _redact(event_dict)


def _add_service_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used in both dev and prod configurations."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_request_context,
        _add_service_info,
        _censor_sensitive_keys,
    ]


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_sql: bool = False,
) -> None:
    """Configure structlog on top of the standard library logging tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON output for production, colored console output otherwise.
        log_sql: Enable SQLAlchemy statement logging.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    shared_processors = get_shared_processors()

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    # Formatter for stdlib loggers (uvicorn, sqlalchemy, ...)
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for logger_name in ["uvicorn", "uvicorn.error"]:
        logging.getLogger(logger_name).handlers = []
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    sa_level = logging.DEBUG if log_sql else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sa_level)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def generate_correlation_id() -> str:
    """Generate a short correlation ID for request tracing."""
    return str(uuid4())[:8]


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to every subsequent log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LoggerRegistry:
    """Registry of pre-configured loggers for the application domains."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, name: str) -> structlog.stdlib.BoundLogger:
        if name not in cls._loggers:
            cls._loggers[name] = get_logger(f"recall.{name}")
        return cls._loggers[name]


def api_logger() -> structlog.stdlib.BoundLogger:
    """Logger for API layer events."""
    return LoggerRegistry.get("api")


def engine_logger() -> structlog.stdlib.BoundLogger:
    """Logger for queue building, import and statistics."""
    return LoggerRegistry.get("engine")


def db_logger() -> structlog.stdlib.BoundLogger:
    """Logger for item and snapshot store operations."""
    return LoggerRegistry.get("db")


def srs_logger() -> structlog.stdlib.BoundLogger:
    """Logger for interval and status arithmetic."""
    return LoggerRegistry.get("srs")


def session_logger() -> structlog.stdlib.BoundLogger:
    """Logger for study session lifecycle and recovery."""
    return LoggerRegistry.get("session")
