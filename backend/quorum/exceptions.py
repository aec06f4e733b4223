"""
Quorum Backend - Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the different failure kinds.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) map them to
       structured JSON error responses with the right HTTP status code.
Who:   Raised by services and the vote coordinator; caught by global handlers.

Exception Hierarchy:
    QuorumError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthenticatedError     → 401 Unauthorized (no caller identity)
    ├── ForbiddenError           → 403 Forbidden (identity lacks permission)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (concurrent modification, retry)
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

The coordinator never swallows any of these. A ConflictError means the
request transaction was rolled back and the whole operation may be retried
from a fresh read; nothing retries automatically.
"""

from typing import Any, Dict, Optional


class QuorumError(Exception):
    """
    Base exception for all Quorum application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client-fixable errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(QuorumError):
    """
    Raised when client input fails a business rule.

    When:    Unknown tag ids, too many tags, unknown category.
    HTTP:    400 Bad Request (schema-level problems are FastAPI's 422)
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


class UnauthenticatedError(QuorumError):
    """No caller identity was supplied with the request. HTTP 401."""

    def __init__(
        self,
        message: str = "Please sign in to continue",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(QuorumError):
    """
    The caller is known but may not perform the action.

    When:    A non-author accepting an answer, reading someone else's notification.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if action:
            ctx["action"] = action
        super().__init__(message=message, context=ctx)
        self.action = action


class NotFoundError(QuorumError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; the service layer converts
    that None into this exception.
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
        self.resource = resource


class ConflictError(QuorumError):
    """
    A concurrent writer changed the rows this operation depends on.

    When:    Two first-votes racing on one (user, answer) pair, a vote that
             vanished between read and write, two accepts racing on a question.
    HTTP:    409 Conflict with Retry-After
    """

    def __init__(
        self,
        message: str = "This item was changed by someone else. Please try again.",
        retry_after: int = 1,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(QuorumError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic. Details (SQL,
    constraint names) are logged server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(QuorumError):
    """
    Raised when a caller exceeds the request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

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
