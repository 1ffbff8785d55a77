"""
Homepage Backend — Shared Response Schemas
==========================================

What:  Error and health response formats shared by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Paint must be exactly 1920x1080 pixels, got 800x600",
            "details": {"field": "upload", "width": 800, "height": 600},
            "request_id": "1f3a9c2e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and container health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    lastfm: str = Field(description="Last.fm upstream: available, circuit_open")
    letterboxd: str = Field(description="Letterboxd upstream: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
