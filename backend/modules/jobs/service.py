"""
Job tracker service.

Owns the lifecycle of background jobs (bulk imports, namecard scans) and
the detached asyncio tasks that run them. Tasks are kept referenced until
they finish so the event loop does not garbage collect them mid-flight.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Coroutine, Optional

from .exceptions import JobNotFoundError
from .interfaces import IJobStore, IJobTracker
from .models import Job, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 900


class JobTracker(IJobTracker):
    """Job lifecycle over an IJobStore."""

    def __init__(
        self,
        store: IJobStore,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._retention = timedelta(seconds=retention_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._tasks: set[asyncio.Task] = set()

    @property
    def retention(self) -> timedelta:
        return self._retention

    async def create(
        self,
        owner_id: Optional[str] = None,
        kind: Optional[str] = None,
        message: str = "Queued",
    ) -> str:
        now = self._clock()
        job = Job(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            kind=kind,
            message=message,
            created_at=now,
            updated_at=now,
        )
        await self._store.save(job)
        logger.debug(f"Created job {job.id} ({kind}) for {owner_id}")
        return job.id

    async def _update(self, job_id: str, **changes: Any) -> Job:
        job = await self._store.load(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        updated = job.model_copy(update={**changes, "updated_at": self._clock()})
        await self._store.save(updated)
        return updated

    async def set_progress(self, job_id: str, progress: int, message: Optional[str] = None) -> Job:
        changes: dict[str, Any] = {"progress": max(0, min(100, int(progress)))}
        if message is not None:
            changes["message"] = message
        return await self._update(job_id, **changes)

    async def complete(self, job_id: str, result: Any = None, message: str = "Completed") -> Job:
        return await self._update(
            job_id,
            status=JobStatus.COMPLETED,
            progress=100,
            message=message,
            result=result,
        )

    async def fail(self, job_id: str, error: str) -> Job:
        logger.warning(f"Job {job_id} failed: {error}")
        return await self._update(
            job_id,
            status=JobStatus.FAILED,
            progress=100,
            message="Failed",
            error=error,
        )

    async def get(self, job_id: str, owner_id: Optional[str] = None) -> Job:
        job = await self._store.load(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        # Another tenant's job is reported exactly like a missing one
        if owner_id is not None and job.owner_id is not None and job.owner_id != owner_id:
            raise JobNotFoundError(job_id)
        return job

    async def sweep(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or self._clock()) - self._retention
        removed = await self._store.remove_older_than(cutoff)
        if removed:
            logger.info(f"Swept {removed} expired jobs")
        return removed

    def dispatch(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Background task {task.get_name()} crashed",
                exc_info=(type(error), error, error.__traceback__),
            )

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every dispatched task. Used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class JobSweeper:
    """
    Periodic eviction loop.

    Runs on the event loop independently of request handling. A failed
    sweep is logged and the loop keeps going.
    """

    def __init__(self, tracker: JobTracker, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS):
        self._tracker = tracker
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="job-sweeper")
        logger.info(f"Job sweeper started (every {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Job sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._tracker.sweep()
            except Exception:
                logger.exception("Job sweep failed")
