"""
Serenity Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one per HTTP failure class.
How:   Each exception carries a user-facing message and an optional context
       dict. Handlers registered in main.py turn them into the structured
       ErrorResponse body with the matching status code.
Who:   Raised by services and auth dependencies; caught by global handlers.

Exception Hierarchy:
    SerenityError (base)
    ├── ValidationError          → 400 Bad Request
    │   └── SessionStateError    → 400 Bad Request (invalid lifecycle transition)
    ├── AuthenticationError      → 401 Unauthorized
    ├── AuthorizationError       → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    └── CircuitBreakerOpenError  → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class SerenityError(Exception):
    """
    Base exception for all Serenity application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional detail; returned as `details` for 4xx errors,
                  logged only for 5xx errors
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SerenityError):
    """
    Raised when client input breaks a business rule.

    Schema-level problems (wrong types, missing fields) are rejected by
    FastAPI with 422 before reaching the services; this class covers the
    rules only the service layer can check, e.g. "Active session already
    exists" or "Session is full".
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


class SessionStateError(ValidationError):
    """
    Raised when a session lifecycle transition is not allowed.

    Example: completing a session that is already completed, or recording an
    interruption on a paused session. Reported as 400 with error code
    `session_error` so clients can tell it apart from plain input errors.
    """

    def __init__(
        self,
        message: str = "Invalid session state transition",
        current_status: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if current_status:
            ctx["status"] = current_status
        super().__init__(message=message, context=ctx)
        self.current_status = current_status


class AuthenticationError(SerenityError):
    """Missing, malformed or expired credentials (401)."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(SerenityError):
    """Authenticated, but not allowed to act on the resource (403)."""

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SerenityError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so routes never inspect query results themselves.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(SerenityError):
    """Write conflicts with existing state, e.g. a duplicate unique value (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(SerenityError):
    """Client exceeded the sliding-window request limit (429)."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(SerenityError):
    """
    Raised when database operations fail unexpectedly.

    The client always receives a generic message; the context (query target,
    original exception type) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(SerenityError):
    """
    Raised when a circuit breaker is OPEN and rejects a call.

    The cache manager catches this and degrades to a cache miss; it only
    reaches a client if an endpoint explicitly requires the cache.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        service: str = "cache",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The {service} service is temporarily unavailable due to repeated failures. "
            f"Retrying in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
