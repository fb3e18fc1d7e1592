"""Request Middleware for Logging and Tracing

- Correlation IDs bound to the structlog context per request
- Request/response logging with timing
- Slow request warnings
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from core.logging import (
    api_logger,
    bind_context,
    clear_context,
    generate_correlation_id,
)

log = api_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and echoes its correlation ID on the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or generate_correlation_id()

        clear_context()
        bind_context(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        log.info(
            "request_started",
            query=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception(
                "request_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        else:
            response.headers["X-Correlation-ID"] = correlation_id
            status = response.status_code
            log_method = log.info if status < 400 else (log.warning if status < 500 else log.error)
            log_method(
                "request_completed",
                status=status,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return response
        finally:
            clear_context()


class SlowRequestMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, slow_threshold_ms: float = 1000):
        super().__init__(app)
        self.slow_threshold_ms = slow_threshold_ms

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        if duration_ms > self.slow_threshold_ms:
            log.warning(
                "slow_request",
                duration_ms=round(duration_ms, 2),
                threshold_ms=self.slow_threshold_ms,
            )

        return response
