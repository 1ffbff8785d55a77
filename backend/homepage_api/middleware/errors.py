"""
Homepage Backend — Unhandled Error Middleware
=============================================

What:  Turns any exception that escaped the route handlers and the
       registered exception handlers into a JSON 500.
How:   Sits inside CORS and Request ID, so crash responses still carry
       Access-Control-Allow-Origin and X-Request-ID. Starlette's own
       Exception handler runs outside every user middleware and would
       answer without either header.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from homepage_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            rid = request_id_var.get("")
            logger.error(
                "[%s] Unexpected error on %s %s: %s",
                rid,
                request.method,
                request.url.path,
                str(exc),
                exc_info=exc,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": "An unexpected error occurred. Please try again later.",
                    "request_id": rid,
                },
            )
