"""
Homepage Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and container health checks.
How:   Checks the database with SELECT 1 and reports each upstream's
       circuit breaker state. Upstreams are not called: a health check
       every few seconds must not spend Last.fm quota.

Status levels:
    - healthy:   database reachable, no circuit open
    - degraded:  database reachable, an upstream circuit is open
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from homepage_api import __version__
from homepage_api.database import engine
from homepage_api.schemas.common import HealthResponse
from homepage_api.services.lastfm_service import lastfm_service
from homepage_api.services.letterboxd_service import letterboxd_service
from homepage_api.services.upstream import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


def _upstream_status(breaker: CircuitBreaker) -> str:
    return "circuit_open" if breaker.is_open else "available"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    lastfm_status = _upstream_status(lastfm_service.upstream.circuit_breaker)
    letterboxd_status = _upstream_status(letterboxd_service.upstream.circuit_breaker)

    if db_status != "connected":
        overall = "unhealthy"
    elif "circuit_open" in (lastfm_status, letterboxd_status):
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        lastfm=lastfm_status,
        letterboxd=letterboxd_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
