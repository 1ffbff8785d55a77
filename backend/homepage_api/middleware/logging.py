"""
Homepage Backend — Request Logging Middleware
=============================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client IP.
How:   Measures wall time around call_next and picks the level from the
       status class (5xx ERROR, 4xx WARNING, otherwise INFO).

Request bodies (note text, paint uploads) and query strings (which may
carry note content) are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from homepage_api.middleware.request_id import request_id_var

logger = logging.getLogger("homepage.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging for everything except the health check."""

    SKIPPED_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
