"""In-memory async job tracking and admission control for scrape runs."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import contextmanager
from functools import partial
from threading import Lock
from typing import Any, Awaitable, Callable, Iterator

from .errors import OverCapacity
from .logging_conf import get_logger
from .models import Job, JobStatus, JobSummary, PlaceRecord

Runner = Callable[..., Awaitable[list[PlaceRecord]]]


class JobRegistry:
    """Track background scrapes from submission to a single terminal state.

    Jobs live for the lifetime of the process; nothing is evicted.
    """

    def __init__(self, runner: Runner) -> None:
        self.runner = runner
        self.logger = get_logger("jobs")
        self._jobs: dict[str, Job] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def submit(self, query: str, params: dict[str, Any] | None = None) -> str:
        """Register a pending job and start its run; must be called inside the event loop."""

        params = dict(params or {})
        job_id = str(uuid.uuid4())
        task = asyncio.get_running_loop().create_task(
            self.runner(query, **params), name=f"scrape-job-{job_id}"
        )
        self._jobs[job_id] = Job(job_id=job_id, query=query, params=params)
        self._tasks[job_id] = task
        task.add_done_callback(partial(self._settle, job_id))
        self.logger.info("job_submitted", job_id=job_id, query=query)
        return job_id

    def _settle(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        job = self._jobs[job_id]
        if task.cancelled():
            job.mark_failed("cancelled")
            self.logger.warning("job_cancelled", job_id=job_id)
            return
        exc = task.exception()
        if exc is not None:
            job.mark_failed(str(exc) or exc.__class__.__name__)
            self.logger.error("job_failed", job_id=job_id, error=str(exc))
            return
        results = task.result()
        job.mark_completed(results)
        self.logger.info("job_completed", job_id=job_id, count=len(results))

    def status(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def list(self) -> list[JobSummary]:
        return [job.summary() for job in self._jobs.values()]

    @property
    def pending_count(self) -> int:
        return sum(1 for job in self._jobs.values() if job.status is JobStatus.PENDING)

    async def aclose(self) -> None:
        """Cancel outstanding runs and wait for them to settle."""

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class AdmissionController:
    """Counting permit for synchronous runs; saturation is rejected, never queued."""

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._active = 0
        self._lock = Lock()

    @property
    def active(self) -> int:
        return self._active

    def try_acquire(self) -> bool:
        with self._lock:
            if self._active >= self.max_concurrent:
                return False
            self._active += 1
            return True

    def release(self) -> None:
        with self._lock:
            if self._active == 0:
                raise RuntimeError("release() called without a matching acquire")
            self._active -= 1

    @contextmanager
    def slot(self) -> Iterator[None]:
        if not self.try_acquire():
            raise OverCapacity(self._active, self.max_concurrent)
        try:
            yield
        finally:
            self.release()


__all__ = ["AdmissionController", "JobRegistry"]
