"""
Request Logging Middleware

Tags each HTTP request with a fresh request_id (exposed to every log line
through contextvars and returned as X-Request-ID), logs its start and end with
timing and records Prometheus HTTP metrics.
"""
import time
import uuid
import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from habitpush.core.logging_config import set_request_id, clear_request_id
from habitpush.core.metrics import record_http_request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Correlation IDs, access logging and HTTP metrics for every request.

    Probe and docs paths are still tagged and counted but not logged, so
    health checks and scrapes do not drown out reminder runs.
    """

    QUIET_PATHS = frozenset({'/health', '/metrics', '/docs', '/redoc', '/openapi.json'})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        token = set_request_id(request_id)
        request.state.request_id = request_id

        method = request.method
        path = request.url.path
        context = {
            "method": method,
            "path": path,
            "client_ip": request.client.host if request.client else "unknown",
        }
        quiet = path in self.QUIET_PATHS
        if not quiet:
            logger.info("Request started", extra={**context, "event_type": "request_start"})

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - started
            record_http_request(method, path, 500, elapsed)
            logger.error(
                "Request failed with exception",
                extra={
                    **context,
                    "event_type": "request_error",
                    "response_time_ms": round(elapsed * 1000, 2),
                    "error_type": type(e).__name__,
                },
                exc_info=True
            )
            clear_request_id(token)
            raise

        elapsed = time.perf_counter() - started
        response.headers[REQUEST_ID_HEADER] = request_id
        record_http_request(method, path, response.status_code, elapsed)

        if not quiet:
            logger.log(
                _level_for_status(response.status_code),
                "Request completed",
                extra={
                    **context,
                    "event_type": "request_complete",
                    "status_code": response.status_code,
                    "response_time_ms": round(elapsed * 1000, 2),
                }
            )

        clear_request_id(token)
        return response
