"""
Homepage Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    HomepageError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── UpstreamServiceError     → 503 Service Unavailable
    └── CircuitBreakerOpenError  → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class HomepageError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only by 4xx handlers)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(HomepageError):
    """
    Raised when client input fails a business rule.

    When:    Paint upload is empty, too large, not an image, or the wrong size.
    HTTP:    400 Bad Request

    Schema-level problems (a non-integer `x`, a missing `content`) never
    reach this class: FastAPI answers those with its own 422.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(HomepageError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown note id, or no paint image uploaded yet.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(HomepageError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, paint directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(HomepageError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The client always receives a generic message. The SQL error, constraint
    name and so on are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamServiceError(HomepageError):
    """
    Raised when a third-party service (Last.fm, Letterboxd) fails after retries.

    HTTP:    503 Service Unavailable

    Attributes:
        service:      Name of the upstream ("lastfm", "letterboxd")
        retry_after:  Suggested seconds before retrying, sent as Retry-After
    """

    def __init__(
        self,
        service: str = "upstream",
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(
            message=message or f"The {service} service is temporarily unavailable",
            context=ctx,
        )
        self.service = service
        self.retry_after = retry_after


class CircuitBreakerOpenError(HomepageError):
    """
    Raised when an upstream's circuit breaker is OPEN.

    When:    After cb_failure_threshold consecutive failures (default: 5).
    HTTP:    503 Service Unavailable, Retry-After = seconds until HALF_OPEN

    State machine:
        CLOSED → (N failures) → OPEN → (recovery timeout) → HALF_OPEN
        HALF_OPEN → success → CLOSED, failure → OPEN
    """

    def __init__(
        self,
        service: str = "upstream",
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The {service} service is temporarily unavailable due to repeated failures. "
            f"Retrying automatically in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["service"] = service
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.service = service
        self.recovery_time = recovery_time
