"""
Servekit — Exception Hierarchy
==============================

What:  Application exceptions, each bound to an HTTP status code.
How:   Every exception carries a user-facing message and an optional context
       dict. The handlers registered in main.py (and the socket hub) render
       them into the standard `{status, message, data, errors}` envelope.
Who:   Raised by controllers, repositories and middlewares.

Hierarchy:
    ServekitError (base)        → 500
    ├── ValidationError         → 400 Bad Request
    ├── UnauthorizedError       → 401 Unauthorized
    ├── NotFoundError           → 404 Not Found
    ├── ConflictError           → 409 Conflict
    └── DatabaseError           → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class ServekitError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return to clients)
        context:  Debug info for server-side logs, never sent to clients
        errors:   Optional structured error listing returned in the envelope
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, List[str]]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.errors = errors
        super().__init__(self.message)


class ValidationError(ServekitError):
    """
    Raised when client input fails validation.

    `errors` uses the same keys as request validation: `param`, `query`, `body`.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation Error",
        errors: Optional[Dict[str, List[str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, errors=errors)


class UnauthorizedError(ServekitError):
    """Raised by middlewares that reject a request or socket event."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ServekitError):
    """
    Raised when a requested resource does not exist.

    Repositories return None for missing rows; controllers turn that into
    this exception so the handler can answer 404.
    """

    status_code = 404

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


class ConflictError(ServekitError):
    """Raised when a write collides with existing data (e.g. a unique key)."""

    status_code = 409

    def __init__(
        self,
        message: str = "The resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DatabaseError(ServekitError):
    """
    Raised when a database operation fails unexpectedly.

    The client always gets a generic message. Details (statement, constraint
    name) go to the server log only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
