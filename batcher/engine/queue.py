"""
Sequencer running at most one job at a time.

Jobs are promoted from the backlog in submission order. Every signal of
the running job (its own and those it forwards from its operations) is
re-published on the queue's bus, so observers can follow any job without
holding a reference to it.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from batcher.config import Settings
from batcher.constants import SignalType
from batcher.engine.job import Job
from batcher.engine.signals import SignalBus, Subscription
from batcher.exceptions import ConfigurationError, JobNotFoundError
from batcher.observability.metrics import get_metrics
from batcher.storage.repository import ExportRepository
from batcher.types.job import JobExport

logger = logging.getLogger(__name__)


class Queue:
    """
    Process-scoped job sequencer.

    Features:
    - FIFO job backlog, one running job at a time
    - Completion handles resolving with the job name
    - Signal forwarding from the running job
    - Optional persistence of completed job exports
    - Queries over in-memory and persisted jobs
    """

    def __init__(
        self,
        export_completed_jobs_dir: str | Path | None = None,
        repository: ExportRepository | None = None,
    ):
        """
        Initialize the queue.

        Args:
            export_completed_jobs_dir: Directory for completed job exports.
                Persistence is disabled when neither this nor a repository is given.
            repository: Export store to use instead of creating one.
        """
        if repository is None and export_completed_jobs_dir is not None:
            repository = ExportRepository(export_completed_jobs_dir)
        self.repository = repository

        self.signals = SignalBus()
        self.current_job: Job | None = None

        self._backlog: deque[Job] = deque()
        self._completed_jobs: list[Job] = []
        self._job_index: dict[str, Job] = {}
        self._forwarding: Subscription | None = None
        self._promoting = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._metrics = get_metrics()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Queue":
        """Create a queue persisting to the configured export directory, if any."""
        return cls(export_completed_jobs_dir=settings.export_completed_jobs_dir)

    def __repr__(self) -> str:
        current = self.current_job.name if self.current_job else None
        return (
            f"Queue(current={current!r}, backlog={len(self._backlog)}, "
            f"completed={len(self._completed_jobs)})"
        )

    @property
    def persistence_enabled(self) -> bool:
        return self.repository is not None

    @property
    def backlog_size(self) -> int:
        return len(self._backlog)

    @property
    def completed_jobs(self) -> list[Job]:
        return list(self._completed_jobs)

    def is_running(self) -> bool:
        """Whether a job is currently executing."""
        return self.current_job is not None

    def is_pending(self) -> bool:
        """Whether jobs are waiting to be run."""
        return len(self._backlog) > 0

    def submit(self, job: Job) -> asyncio.Future[str]:
        """
        Add a job to the backlog, starting it right away if the queue is idle.

        Must be called from a running event loop.

        Args:
            job: A job that has not been started.

        Returns:
            A future resolving with the job's name once it has completed and
            its export has been persisted (when persistence is enabled).
        """
        handle: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        job.signals.once(
            lambda _: self._spawn(self._finalize(job, handle)),
            SignalType.JOB_COMPLETED,
        )

        self._backlog.append(job)
        self._job_index[job.name] = job
        self._metrics.record_job_submitted()
        self._metrics.update_queue_depth(len(self._backlog))

        logger.info(
            "Job queued",
            extra={"job_name": job.name, "backlog_size": len(self._backlog)}
        )

        self._start_next_job()
        return handle

    def _start_next_job(self) -> None:
        """
        Promote backlog heads while nothing is running.

        A job may complete inside its own ``start()`` (no operations), which
        re-enters here from its completion handler. The re-entrant call only
        returns; the loop below picks up the next job on the same frame.
        """
        if self._promoting:
            return

        self._promoting = True
        try:
            while not self.is_running() and self.is_pending():
                job = self._backlog.popleft()
                self.current_job = job
                self._metrics.update_queue_depth(len(self._backlog))

                # Forwarding first, so this job's completion reaches queue
                # subscribers before the next job's start.
                self._forwarding = job.signals.subscribe(self.signals.publish)
                job.signals.once(
                    lambda _, job=job: self._handle_job_complete(job),
                    SignalType.JOB_COMPLETED,
                )

                logger.info(
                    "Starting job",
                    extra={"job_name": job.name, "backlog_size": len(self._backlog)}
                )
                job.start()
        finally:
            self._promoting = False

    def _handle_job_complete(self, job: Job) -> None:
        if self._forwarding is not None:
            job.signals.unsubscribe(self._forwarding)
            self._forwarding = None
        self._completed_jobs.append(job)
        self.current_job = None
        self._start_next_job()

    async def _finalize(self, job: Job, handle: asyncio.Future[str]) -> None:
        """Persist a completed job, then resolve its completion handle."""
        if self.repository is not None:
            try:
                await asyncio.to_thread(self.repository.save, job.export())
            except (OSError, ValueError):
                # Best effort: the job is complete either way.
                logger.exception(
                    "Failed to persist job export",
                    extra={"job_name": job.name}
                )
        if not handle.done():
            handle.set_result(job.name)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _require_repository(self) -> ExportRepository:
        if self.repository is None:
            raise ConfigurationError(
                "Persisted jobs were requested but no export directory is configured"
            )
        return self.repository

    async def has_job(self, name: str, include_persisted: bool = False) -> bool:
        """
        Whether a job with this name is known.

        Raises:
            ConfigurationError: If persisted jobs are requested without a directory.
        """
        repository = self._require_repository() if include_persisted else None
        if name in self._job_index:
            return True
        if repository is None:
            return False
        return await asyncio.to_thread(repository.exists, name)

    async def get_all_jobs(self, include_persisted: bool = False) -> list[JobExport]:
        """
        Exports of every known job.

        In-memory jobs come first, in submission order, followed by persisted
        jobs that are not in memory. An in-memory job shadows its persisted copy.

        Raises:
            ConfigurationError: If persisted jobs are requested without a directory.
        """
        repository = self._require_repository() if include_persisted else None
        exports = [job.export() for job in self._job_index.values()]
        if repository is not None:
            persisted = await asyncio.to_thread(repository.load_all)
            exports.extend(
                export for export in persisted if export.name not in self._job_index
            )
        return exports

    async def get_job_export(self, name: str, include_persisted: bool = False) -> JobExport:
        """
        Export of one job, live if it is in memory.

        Raises:
            ConfigurationError: If persisted jobs are requested without a directory.
            JobNotFoundError: If the job is not found anywhere searched.
        """
        repository = self._require_repository() if include_persisted else None
        job = self._job_index.get(name)
        if job is not None:
            return job.export()
        if repository is not None and await asyncio.to_thread(repository.exists, name):
            export = await asyncio.to_thread(repository.load, name)
            if export is not None:
                return export
        raise JobNotFoundError(name)
