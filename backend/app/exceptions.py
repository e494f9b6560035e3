"""
Agora Backend: Custom Exception Hierarchy
==========================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, without leaking internals.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    AgoraError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthorizedError        → 401 (no acting identity on the request)
    ├── ForbiddenError           → 403 Forbidden (ownership check failed)
    ├── NotFoundError            → 404 Not Found
    ├── PersistenceError         → 500 (transaction could not commit, rolled back)
    ├── FileStorageError         → 500 (upload could not be written)
    └── StorageCleanupWarning    → never raised to callers

Propagation policy:
    NotFoundError and ForbiddenError are detected before any mutation.
    PersistenceError always means the whole transaction was rolled back.
    StorageCleanupWarning describes a physical file that could not be removed
    AFTER a successful commit. It is collected into the operation's result and
    logged; it never changes the reported outcome. The orphan sweeper
    reclaims such files on its next run.
"""

from typing import Any, Dict, Optional


class AgoraError(Exception):
    """
    Base exception for all Agora application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client
                  unless the handler explicitly includes it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(AgoraError):
    """
    Raised when client input fails a business rule.

    When:    Unsupported file type, file too large, duplicate like,
             attaching a file that already belongs to another post.
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


class UnauthorizedError(AgoraError):
    """
    Raised when a request carries no usable acting identity.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(AgoraError):
    """
    Raised when the acting user does not own the resource being mutated.

    Authorization here is ownership-based, not role-based: a post may only
    be deleted by its author (admin routes bypass the check explicitly).
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(AgoraError):
    """
    Raised when a referenced entity does not exist.

    SQLAlchemy returns None for missing records (not an exception).
    We convert None → NotFoundError in the service layer.
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


class PersistenceError(AgoraError):
    """
    Raised when a transaction could not be committed.

    When:    Connection lost, constraint violation, transaction timeout,
             lock conflicts that outlived every retry.
    HTTP:    500 Internal Server Error

    Guarantee:
        Raised only after the enclosing transaction was rolled back, so no
        partial cascade is ever visible. No file on disk has been touched.
        The message returned to the client is always generic.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(AgoraError):
    """
    Raised when a file could not be written to the upload volume.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageCleanupWarning(AgoraError):
    """
    A physical file could not be removed after the database commit.

    Never raised out of a service. Returned inside `DeletionResult` /
    `SweepReport` so callers and tests can inspect it, and logged at WARNING.
    """

    def __init__(
        self,
        category: str,
        filename: str,
        reason: str,
    ):
        super().__init__(
            message=f"Could not remove {category} file '{filename}': {reason}",
            context={"category": category, "filename": filename, "reason": reason},
        )
        self.category = category
        self.filename = filename
        self.reason = reason
