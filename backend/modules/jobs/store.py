"""
Job stores.

The in-memory store serves a single process. The Redis store keeps one
JSON document per job with a TTL equal to the retention window so any
instance can answer a status poll.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from redis.asyncio import Redis

from .interfaces import IJobStore
from .models import Job

logger = logging.getLogger(__name__)


class InMemoryJobStore(IJobStore):
    """Process-wide dict of jobs keyed by id."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def save(self, job: Job) -> None:
        async with self._lock:
            self._jobs[job.id] = job

    async def load(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def remove_older_than(self, cutoff: datetime) -> int:
        async with self._lock:
            expired = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def __len__(self) -> int:
        return len(self._jobs)


class RedisJobStore(IJobStore):
    """Jobs shared across API instances."""

    def __init__(self, redis: Redis, retention_seconds: int, prefix: str = "salesdesk") -> None:
        self._redis = redis
        self._retention = retention_seconds
        self._prefix = prefix

    def _key(self, job_id: str) -> str:
        return f"{self._prefix}:job:{job_id}"

    async def save(self, job: Job) -> None:
        # Expiry counts from creation so progress updates never extend a job's life
        age = (datetime.now(job.created_at.tzinfo) - job.created_at).total_seconds()
        ttl = max(1, int(self._retention - age))
        await self._redis.set(self._key(job.id), job.model_dump_json(), ex=ttl)

    async def load(self, job_id: str) -> Optional[Job]:
        raw = await self._redis.get(self._key(job_id))
        if raw is None:
            return None
        return Job.model_validate_json(raw)

    async def remove_older_than(self, cutoff: datetime) -> int:
        """Redis expires job keys on its own; nothing is left to sweep."""
        return 0
