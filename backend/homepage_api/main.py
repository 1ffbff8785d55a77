"""
Homepage Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn homepage_api.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware Chain (outermost first):                 │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌────────┐ ┌──────┐ │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Errors │→│ GZip │ │
    │  └──────┘ └────────┘ └─────────┘ └────────┘ └──────┘ │
    │                                                      │
    │  Routes:                                             │
    │  /notes  /paint  /lastfm  /letterboxd  /health       │
    │                                                      │
    │  Exception Handlers:                                 │
    │  Validation→400 │ NotFound→404 │ Upstream→503 │ →500 │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → SQLite tables → paint directory
    Shutdown: close outbound HTTP client → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from homepage_api import __version__
from homepage_api.config import settings
from homepage_api.database import dispose_engine, init_models
from homepage_api.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    FileStorageError,
    HomepageError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from homepage_api.middleware.errors import UnhandledErrorMiddleware
from homepage_api.middleware.logging import RequestLoggingMiddleware
from homepage_api.middleware.request_id import RequestIDMiddleware, request_id_var
from homepage_api.routes import health, lastfm, letterboxd, notes, paint
from homepage_api.services.upstream import close_http_client

logger = logging.getLogger(__name__)

CORS_METHODS = ["POST", "GET", "PATCH", "DELETE", "OPTIONS"]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (captured by the container runtime)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-operation chatter from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    # Pillow logs every PNG chunk at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Homepage backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: notes, paint and letterboxd still work without Last.fm
        logger.error("Configuration error: %s", str(e))

    if settings.is_sqlite:
        await init_models()
        logger.info("SQLite schema ensured at %s", settings.database_url)

    paint_dir = Path(settings.paint_path).resolve().parent
    paint_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Paint image path: %s", Path(settings.paint_path).resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Homepage backend shutting down...")
    await close_http_client()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: dict = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

        ValidationError         → 400
        NotFoundError           → 404
        DatabaseError           → 500 (generic message)
        FileStorageError        → 500
        UpstreamServiceError    → 503 (+ Retry-After when known)
        CircuitBreakerOpenError → 503 + Retry-After
        HomepageError (base)    → 500

    Anything else is answered by UnhandledErrorMiddleware.

    Server-side errors never echo their context to the client.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.service)
        return JSONResponse(
            status_code=503,
            content=_error_body(
                "service_unavailable",
                exc.message,
                {"service": exc.service, "recovery_time": exc.recovery_time},
            ),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error(
            "[%s] Upstream error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=503,
            content=_error_body("upstream_error", exc.message, {"service": exc.service}),
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error",
                "An internal error occurred. Please try again later.",
            ),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(HomepageError)
    async def handle_homepage_error(request: Request, exc: HomepageError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Homepage API",
        description=(
            "Personal-site backend: sticky notes, a shared paint canvas, "
            "a cached Last.fm proxy and a cached Letterboxd diary scrape."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition (last added = outermost)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Outermost: answers preflight OPTIONS for every path before routing
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Cache", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(notes.router)
    app.include_router(paint.router)
    app.include_router(lastfm.router)
    app.include_router(letterboxd.router)
    app.include_router(health.router)

    return app


app = create_app()
