"""
Job tracker interfaces.

IJobStore is the narrow storage contract; IJobTracker is what import and
scan pipelines depend on.
"""

import asyncio
from datetime import datetime
from typing import Any, Coroutine, Optional, Protocol, runtime_checkable

from .models import Job


@runtime_checkable
class IJobStore(Protocol):
    """Keyed storage for job snapshots."""

    async def save(self, job: Job) -> None:
        """Insert or replace a job."""
        ...

    async def load(self, job_id: str) -> Optional[Job]:
        """Fetch a job, or None if unknown or evicted."""
        ...

    async def remove_older_than(self, cutoff: datetime) -> int:
        """Drop jobs created before ``cutoff``. Returns how many were removed."""
        ...


@runtime_checkable
class IJobTracker(Protocol):
    """
    Interface for background job lifecycle tracking.

    Jobs start in ``processing`` at progress 0 and end in ``completed`` or
    ``failed`` with progress forced to 100.
    """

    async def create(
        self,
        owner_id: Optional[str] = None,
        kind: Optional[str] = None,
        message: str = "Queued",
    ) -> str:
        """Register a new job and return its id."""
        ...

    async def set_progress(self, job_id: str, progress: int, message: Optional[str] = None) -> Job:
        """Update progress (clamped to 0..100) and optionally the message."""
        ...

    async def complete(self, job_id: str, result: Any = None, message: str = "Completed") -> Job:
        """Mark the job completed with its result."""
        ...

    async def fail(self, job_id: str, error: str) -> Job:
        """Mark the job failed with an error message."""
        ...

    async def get(self, job_id: str, owner_id: Optional[str] = None) -> Job:
        """
        Fetch a job.

        Raises:
            JobNotFoundError: If the id is unknown, evicted, or owned by another tenant
        """
        ...

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """Evict jobs past the retention window. Returns the count removed."""
        ...

    def dispatch(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        """Run ``coro`` as a detached background task."""
        ...
