"""
Agora Backend: Shared Response Schemas
=======================================

What:  Error, health and maintenance response bodies shared by every router.

ErrorResponse example:
    {
        "error": "forbidden",
        "message": "Only the author can delete this post.",
        "details": {"post_id": "...", "user_id": "..."},
        "request_id": "a1b2c3d4"
    }
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.exceptions import StorageCleanupWarning


class ErrorResponse(BaseModel):
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Upload volume: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")


class CleanupWarningSchema(BaseModel):
    """A physical file left behind after a committed deletion."""

    category: str
    filename: str
    reason: str

    @classmethod
    def from_warning(cls, warning: StorageCleanupWarning) -> "CleanupWarningSchema":
        return cls(category=warning.category, filename=warning.filename, reason=warning.reason)


class DeletionResponse(BaseModel):
    """
    Body of every successful DELETE.

    `cleanup_warnings` is informational: the deletion itself is committed,
    the listed files will be reclaimed by the next orphan sweep.
    """

    message: str = Field(default="Deleted successfully")
    deleted: Dict[str, Any] = Field(description="Snapshot of the deleted record")
    removed_files: List[str] = Field(default_factory=list)
    cleanup_warnings: List[CleanupWarningSchema] = Field(default_factory=list)


class SweepResponse(BaseModel):
    removed_count: int
    removed: List[Dict[str, str]] = Field(default_factory=list)
    purged_records: int = 0
    warnings: List[CleanupWarningSchema] = Field(default_factory=list)
