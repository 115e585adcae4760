"""
Job tracker data models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Lifecycle states. ``completed`` and ``failed`` are terminal."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class JobKind(str, Enum):
    """Kinds of background work tracked by the job tracker."""

    SPREADSHEET_IMPORT = "spreadsheet_import"
    NAMECARD_SCAN = "namecard_scan"


class Job(BaseModel):
    """
    Snapshot of a background job.

    Progress is expected to be non-decreasing, but the tracker does not
    enforce it: each job has a single cooperative writer.
    """

    id: str = Field(..., description="Opaque job identifier")
    status: JobStatus = Field(default=JobStatus.PROCESSING)
    progress: int = Field(default=0, ge=0, le=100, description="Percent complete")
    message: str = Field(default="Queued", description="Human readable progress note")
    result: Optional[Any] = Field(default=None, description="Payload set on completion")
    error: Optional[str] = Field(default=None, description="Failure reason")
    owner_id: Optional[str] = Field(default=None, description="Tenant that submitted the job")
    kind: Optional[str] = Field(default=None, description="What the job does")
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def to_status_payload(self) -> dict[str, Any]:
        """Shape returned by the status polling endpoint."""
        return {
            "jobId": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "result": self.result,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
        }
