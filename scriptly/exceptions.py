"""
Scriptly Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every business-rule violation.
Why:   Services raise one of these at the point of violation with a specific,
       human-readable message; global handlers (registered in main.py) turn
       them into JSON error responses with the right HTTP status code.
How:   Each exception class carries a message and optional context dict.
       The message is returned to the client, the context is only logged.

Exception Hierarchy:
    ScriptlyError (base)
    ├── ValidationError      → 400 Bad Request (missing/malformed input)
    ├── UnauthorizedError    → 401 Unauthorized (no/invalid credential)
    ├── ForbiddenError       → 403 Forbidden (insufficient privilege/ownership)
    ├── NotFoundError        → 404 Not Found
    ├── ConflictError        → 409 Conflict (duplicate, redundant transition)
    └── DatabaseError        → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class ScriptlyError(Exception):
    """
    Base exception for all Scriptly application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client
                  unless the handler explicitly exposes it as `details`)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ScriptlyError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, empty names, password too short,
             assigning an admin as chapter lead.
    HTTP:    400 Bad Request
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


class UnauthorizedError(ScriptlyError):
    """
    Raised when the caller has no usable credential.

    HTTP:    401 Unauthorized

    The `code` is machine-checkable: the client forces a re-login on
    `token_invalid` but simply shows a login form on `token_missing`.
    """

    def __init__(
        self,
        message: str = "Not authorized",
        code: str = "token_invalid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.code = code


class ForbiddenError(ScriptlyError):
    """
    Raised when an authenticated actor lacks the privilege or ownership
    required by the Authorization Policy.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Not authorized to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ScriptlyError):
    """
    Raised when a requested or referenced resource does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
            if resource_id:
                message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(ScriptlyError):
    """
    Raised when a request clashes with current state.

    When:    Duplicate unique name/email, approving an approved tutorial,
             vouching twice, registering twice for an event,
             deleting a category that still has tutorials.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The request conflicts with the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ScriptlyError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the original
    error type is kept in `context` for the server-side log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
