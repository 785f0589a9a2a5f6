"""
HTTP middleware: request logging, timing and request-scoped log context
"""

import time
from typing import Callable, Set
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portal.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    set_level,
    generate_request_id,
)


# Paths that should skip detailed logging
SKIP_LOGGING_PATHS: Set[str] = {
    "/",
    "/health",
    "/api/v1/health",
    "/api/v1/health/live",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
}

# Long-lived SSE responses; duration is connection time, not latency
STREAMING_PATHS: Set[str] = {
    "/api/v1/timetable/stream",
}


def should_skip_logging(path: str) -> bool:
    return path in SKIP_LOGGING_PATHS


def is_streaming_path(path: str) -> bool:
    return any(path.startswith(streaming_path) for streaming_path in STREAMING_PATHS)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request and response.

    Sets the request id context variable for downstream logging and echoes
    it back in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        path = request.url.path
        skip_logging = should_skip_logging(path)
        is_streaming = is_streaming_path(path)
        start_time = time.perf_counter()

        if not skip_logging:
            logger.info(
                f"→ {request.method} {path}",
                extra={
                    "event_type": "http_request_start",
                    "http_method": request.method,
                    "http_path": path,
                    "client_ip": request.client.host if request.client else "unknown",
                }
            )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

            if not skip_logging:
                logger.log_request(
                    request.method,
                    path,
                    response.status_code,
                    duration_ms,
                    is_streaming=is_streaming,
                )

                if duration_ms > 1000 and not is_streaming:
                    logger.warning(
                        f"Slow request: {request.method} {path} took {duration_ms:.2f}ms",
                        extra={"event_type": "slow_request", "duration_ms": duration_ms}
                    )

            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"✗ {request.method} {path} - Exception ({duration_ms:.2f}ms): {type(exc).__name__}",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": request.method,
                    "http_path": path,
                    "error_type": type(exc).__name__,
                }
            )
            raise

        finally:
            set_request_id("")
            set_user_id("")
            set_level("")
