"""
MarkNotes Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the different failure classes.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the `{success: false, error, ...}` envelope with the matching
       HTTP status code.
Who:   Raised by the store, services and middleware; caught by global handlers.

Exception Hierarchy:
    MarkNotesError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 Internal Server Error (detail withheld)
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── ApiError                 → client gateway only (status 0 = no response)
"""

from typing import Any, Dict, List, Optional


class MarkNotesError(Exception):
    """
    Base exception for all MarkNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MarkNotesError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request

    `details` is a list of `{"field": ..., "message": ...}` entries and is
    returned to the client as-is.

    Example response:
        {
            "success": false,
            "error": "Validation failed",
            "details": [{"field": "title", "message": "Title is required"}]
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        if details is None:
            details = [{"field": field or "", "message": message}]
        self.details = details


class NotFoundError(MarkNotesError):
    """
    Raised when a well-formed identifier matches no record.

    HTTP:    404 Not Found

    The store itself reports absence as None/False; the service layer turns
    that into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "Note",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(MarkNotesError):
    """
    Raised when a store operation fails unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the original
    error type is kept in `context` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MarkNotesError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Too many requests from this IP, please try again later."
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ApiError(MarkNotesError):
    """
    Raised by the client gateway when an API call does not succeed.

    status:  HTTP status of the response, or 0 when no response arrived
             (connection failure, timeout, unreadable body)
    body:    Decoded error envelope from the server, if any

    Never raised by the server itself.
    """

    def __init__(
        self,
        message: str,
        status: int,
        body: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context={"status": status})
        self.status = status
        self.body = body or {}

    @property
    def is_retryable(self) -> bool:
        """Network failures and 5xx responses may succeed on a later attempt."""
        return self.status == 0 or self.status >= 500
