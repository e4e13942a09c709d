"""Processor service for draining image generation jobs."""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..exceptions import JobNotFoundError, TaskNotFoundError, ValidationError
from ..models.job import TERMINAL_JOB_STATUSES, JobKind, JobStatus, TaskStatus
from ..schemas.job import Job
from .job_kinds import JobKindHandler, default_kinds
from .job_service import JobService
from .supervisor import JobSupervisor
from .task_runner import TaskRunner

logger = logging.getLogger(__name__)

# Statuses a job can be left in by a process that died mid-drain
IN_FLIGHT_JOB_STATUSES = (JobStatus.PROCESSING, JobStatus.ASSEMBLING)

CANCELLED_MESSAGE = "Cancelled"


class JobProcessor:
    """
    Drains a job's pending tasks through the task runner, one at a time.

    At most one drain runs per job; the supervisor enforces this and carries
    cancellation requests, which are honoured between tasks. A task already
    sent to the gateway always finishes and is recorded.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        supervisor: JobSupervisor,
        runner: TaskRunner,
        kinds: Optional[dict[JobKind, JobKindHandler]] = None,
        task_delay: float = None,
    ):
        self.session_factory = session_factory
        self.supervisor = supervisor
        self.runner = runner
        self.kinds = kinds if kinds is not None else default_kinds()
        self.task_delay = settings.task_delay_seconds if task_delay is None else task_delay
        self._background: set[asyncio.Task] = set()

    def start(self, job_id: int) -> bool:
        """
        Start draining a job in the background.

        Args:
            job_id: Job ID to process

        Returns:
            True if a drain was scheduled, False if the running drain took the work
        """
        if self.supervisor.reclaim(job_id):
            logger.info(f"Job {job_id} is already being processed")
            return False
        task = asyncio.create_task(self.run(job_id), name=f"job-{job_id}")
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return True

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background drain {task.get_name()} crashed: {exc}", exc_info=exc)

    def is_processing(self, job_id: int) -> bool:
        return self.supervisor.is_active(job_id)

    async def run(self, job_id: int) -> None:
        """Drain a job to completion, cancellation or error. No-op if already running."""
        if not self.supervisor.try_register(job_id):
            logger.info(f"Job {job_id} is already being processed")
            return

        released = False
        resumed = False
        try:
            while not released:
                async with self.session_factory() as db:
                    store = JobService(db)
                    if not resumed or await store.get_next_pending_task(job_id) is not None:
                        await self._process(store, job_id)
                released = self.supervisor.finish(job_id)
                if not released:
                    logger.info(f"Job {job_id} was handed more work while finishing")
                resumed = True
        finally:
            if not released:
                self.supervisor.release(job_id)

    async def _process(self, store: JobService, job_id: int) -> None:
        job = await store.get_job(job_id)
        if job is None:
            logger.error(f"Job {job_id} not found")
            return
        kind = self.kinds[job.kind]

        while True:
            await store.set_job_status(job_id, JobStatus.PROCESSING)

            cancelled = await self._drain(store, job)
            if cancelled:
                logger.info(f"Job {job_id} was cancelled")
                await store.set_job_status(job_id, JobStatus.FAILED, error=CANCELLED_MESSAGE)
                return

            await self._finalize(store, kind, job_id)

            # A retry may have reset a task while the job was finalizing
            if await store.get_next_pending_task(job_id) is None:
                break
            logger.info(f"Job {job_id} has pending tasks again, resuming drain")

        logger.info(f"Job {job_id} processing complete")

    async def _drain(self, store: JobService, job: Job) -> bool:
        """Run pending tasks in ordinal order. Returns True if stopped by cancellation."""
        while True:
            if not self.supervisor.is_active(job.id):
                return True

            task = await store.get_next_pending_task(job.id)
            if task is None:
                return False

            await self.runner.run_task(store, job, task)

            # Serial with a fixed gap to respect the provider's rate limits
            await asyncio.sleep(self.task_delay)

    async def _finalize(self, store: JobService, kind: JobKindHandler, job_id: int) -> None:
        job = await store.get_job(job_id)

        if job.failed_count == job.total_count:
            logger.warning(f"Job {job_id}: all {job.total_count} tasks failed")
            await store.set_job_status(job_id, JobStatus.FAILED, error="All tasks failed")
            return

        if not kind.requires_assembly:
            await store.set_job_status(job_id, JobStatus.COMPLETED)
            return

        await store.set_job_status(job_id, JobStatus.ASSEMBLING)
        tasks = await store.get_tasks(job_id)
        try:
            await kind.assemble(job, tasks)
        except Exception as e:
            logger.exception(f"Failed to assemble job {job_id}: {e}")
            await store.set_job_status(job_id, JobStatus.FAILED, error=f"Assembly failed: {e}")
            return

        await store.set_job_status(job_id, JobStatus.COMPLETED)

    async def retry_task(self, job_id: int, task_id: int) -> None:
        """
        Reset one failed task and make sure a drain picks it up.

        Raises:
            JobNotFoundError: the job does not exist
            TaskNotFoundError: the task does not exist or belongs to another job
            ValidationError: the task is not ``failed``
        """
        async with self.session_factory() as db:
            store = JobService(db)
            job = await store.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            task = await store.get_task(task_id)
            if task is None or task.job_id != job_id:
                raise TaskNotFoundError(task_id, job_id)
            if task.status != TaskStatus.FAILED:
                raise ValidationError("Can only retry failed tasks")

            if not await store.reset_task(task_id, from_status=TaskStatus.FAILED):
                raise ValidationError("Can only retry failed tasks")
            await store.decrement_job_progress_on_retry(job_id)

            if job.status in TERMINAL_JOB_STATUSES:
                await store.set_job_status(job_id, JobStatus.PROCESSING)

        logger.info(f"Task {task_id} of job {job_id} reset for retry")
        self.start(job_id)

    async def cancel(self, job_id: int) -> None:
        """Stop scheduling new tasks for a job and mark it failed."""
        async with self.session_factory() as db:
            store = JobService(db)
            if await store.get_job(job_id) is None:
                raise JobNotFoundError(job_id)
            self.supervisor.deactivate(job_id)
            await store.set_job_status(job_id, JobStatus.FAILED, error=CANCELLED_MESSAGE)
        logger.info(f"Job {job_id} cancellation requested")

    async def resume(self, job_id: int) -> bool:
        """
        Restart draining a job that still has pending tasks, e.g. after a cancel.

        Returns:
            True if a drain was scheduled, False if one was already active
        """
        async with self.session_factory() as db:
            store = JobService(db)
            if await store.get_job(job_id) is None:
                raise JobNotFoundError(job_id)
            if self.supervisor.is_active(job_id):
                return False
            if await store.get_next_pending_task(job_id) is None:
                raise ValidationError("Job has no pending tasks")
            await store.set_job_status(job_id, JobStatus.PROCESSING)
        return self.start(job_id)

    async def reconcile(self) -> list[int]:
        """
        Restart jobs left in flight by a previous process.

        Tasks stuck in ``processing`` were never counted, so they are reset to
        ``pending`` without touching the job counters. Only jobs without a
        supervisor entry are touched.
        """
        restarted = []
        async with self.session_factory() as db:
            store = JobService(db)
            for job in await store.list_jobs_in_status(IN_FLIGHT_JOB_STATUSES):
                if self.supervisor.is_running(job.id):
                    continue
                for task in await store.get_tasks(job.id):
                    if task.status == TaskStatus.PROCESSING:
                        await store.reset_task(task.id, from_status=TaskStatus.PROCESSING)
                restarted.append(job.id)

        for job_id in restarted:
            logger.warning(f"Reconciling orphaned job {job_id}")
            self.start(job_id)
        return restarted

    async def join(self) -> None:
        """Wait for all background drains, including ones started while waiting."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background drains; their jobs stay in flight for a later reconcile."""
        for task in list(self._background):
            task.cancel()
        await self.join()
