"""
Breviago Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per kind of failure a client can see.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py translate them into JSON
       error responses with the matching HTTP status code. Context is logged
       and, for client errors, returned as "details".

Exception Hierarchy:
    BreviagoError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthenticationError          → 401 Unauthorized
    │   ├── InvalidTokenError        → 401 (bad signature, format, algorithm)
    │   └── TokenExpiredError        → 401 (exp claim in the past)
    ├── PermissionDeniedError        → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── ConflictError                → 409 Conflict
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── DatabaseError                → 500 Internal Server Error
    ├── AuthorizationServiceError    → 503 Service Unavailable
    └── CircuitBreakerOpenError      → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class BreviagoError(Exception):
    """
    Base exception for all Breviago application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BreviagoError):
    """
    Raised when client input breaks a business rule.

    Covers business rules such as "acronym cannot be empty" or "cannot
    relate an acronym to itself". Schema-level problems (wrong types, missing
    fields) are rejected by FastAPI before the services run and are answered
    with the same 400 validation_error body.
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


class AuthenticationError(BreviagoError):
    """
    Raised when the caller's identity cannot be established.

    `code` is the machine-readable reason returned to the client
    (missing_token, invalid_token, token_expired, invalid_credentials,
    session_revoked, unauthorized).
    """

    code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        if code:
            self.code = code


class InvalidTokenError(AuthenticationError):
    code = "invalid_token"

    def __init__(self, message: str = "invalid token", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class TokenExpiredError(AuthenticationError):
    code = "token_expired"

    def __init__(self, message: str = "token expired", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class PermissionDeniedError(BreviagoError):
    """
    Raised when an authenticated user lacks a relation on an object.

    The context records (user, relation, object) for the server log; the
    response only says the permission was denied.
    """

    def __init__(
        self,
        message: str = "permission denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BreviagoError):
    """
    Raised when a requested resource does not exist (or is soft-deleted).

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception so routes stay free of status-code logic.
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


class ConflictError(BreviagoError):
    """Raised when a write would violate a uniqueness rule (username, label, grant...)."""

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(BreviagoError):
    """Raised when a client exceeds the per-IP request rate limit."""

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


class DatabaseError(BreviagoError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the original
    error type goes into the context and the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationServiceError(BreviagoError):
    """
    Raised when the permission backend (OpenFGA) cannot answer.

    Distinct from PermissionDeniedError: the request is not known to be
    forbidden, the check itself failed. Clients may retry after `retry_after`.
    """

    def __init__(
        self,
        message: str = "failed to check authorization",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(BreviagoError):
    """
    Raised while the circuit breaker guarding OpenFGA is OPEN.

    After cb_failure_threshold consecutive failures every check fails fast
    for cb_recovery_timeout seconds, then a single probe request is let
    through (HALF_OPEN).
    """

    def __init__(
        self,
        recovery_time: int = 30,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Authorization service is temporarily unavailable due to repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
