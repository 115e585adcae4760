"""
Jobs module.

Pollable background work: spreadsheet imports and namecard scans run as
detached tasks while clients poll their status by id.

Public API:
- IJobTracker / JobTracker: Job lifecycle and task dispatch
- JobSweeper: Periodic eviction loop, started in the app lifespan
- IJobStore, InMemoryJobStore, RedisJobStore: Job storage
- Job, JobStatus, JobKind: Models
- JobNotFoundError
"""

from .interfaces import IJobStore, IJobTracker
from .models import Job, JobKind, JobStatus
from .exceptions import JobNotFoundError
from .store import InMemoryJobStore, RedisJobStore
from .service import JobSweeper, JobTracker

__all__ = [
    "IJobStore",
    "IJobTracker",
    "Job",
    "JobKind",
    "JobStatus",
    "JobNotFoundError",
    "InMemoryJobStore",
    "RedisJobStore",
    "JobSweeper",
    "JobTracker",
]
