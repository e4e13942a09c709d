"""Work Store: persistence of jobs and tasks.

Every write commits immediately so status pollers on other sessions observe it.
Counter changes are single UPDATE statements (``col = col + 1``) rather than
read-modify-write, so they stay correct under concurrent writers.
"""

import json
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import ValidationError
from ..models.job import TERMINAL_JOB_STATUSES, JobSpec, JobStatus, TaskStatus
from ..schemas.job import Job, Task

logger = logging.getLogger(__name__)


class JobService:
    """Service for job and task persistence."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_job(self, spec: JobSpec, cost_per_task: float = None) -> int:
        """Insert a pending job with all of its pending tasks and return its ID."""
        if not spec.tasks:
            raise ValidationError("A job needs at least one task")
        ordinals = [task.ordinal for task in spec.tasks]
        if len(set(ordinals)) != len(ordinals):
            raise ValidationError("Task ordinals must be unique within a job")

        if cost_per_task is None:
            cost_per_task = settings.cost_per_task

        job = Job(
            kind=spec.kind,
            status=JobStatus.PENDING,
            total_count=len(spec.tasks),
            completed_count=0,
            failed_count=0,
            prompt=spec.prompt,
            preset=spec.preset,
            aspect_ratio=spec.aspect_ratio,
            estimated_cost=len(spec.tasks) * cost_per_task,
            details_json=json.dumps(spec.details),
            created_at=datetime.utcnow(),
        )
        self.db.add(job)
        await self.db.flush()

        for task_spec in spec.tasks:
            self.db.add(
                Task(
                    job_id=job.id,
                    ordinal=task_spec.ordinal,
                    label=task_spec.label,
                    status=TaskStatus.PENDING,
                    input_image=task_spec.image,
                    input_mime_type=task_spec.mime_type,
                    created_at=datetime.utcnow(),
                )
            )

        await self.db.commit()
        logger.info(f"Created {spec.kind.value} job {job.id} with {job.total_count} tasks")
        return job.id

    async def get_job(self, job_id: int) -> Optional[Job]:
        """Get a job by ID."""
        result = await self.db.execute(
            select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_tasks(self, job_id: int) -> list[Task]:
        """Get all tasks of a job ordered by ordinal."""
        result = await self.db.execute(
            select(Task)
            .where(Task.job_id == job_id)
            .order_by(Task.ordinal)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_task(self, task_id: int) -> Optional[Task]:
        """Get a task by ID."""
        result = await self.db.execute(
            select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_next_pending_task(self, job_id: int) -> Optional[Task]:
        """Get the lowest-ordinal pending task of a job."""
        result = await self.db.execute(
            select(Task)
            .where(Task.job_id == job_id, Task.status == TaskStatus.PENDING)
            .order_by(Task.ordinal)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_jobs(self, limit: int = 20, offset: int = 0) -> list[Job]:
        """List jobs, most recent first."""
        result = await self.db.execute(
            select(Job)
            .order_by(Job.created_at.desc(), Job.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_jobs(self) -> int:
        result = await self.db.execute(select(func.count(Job.id)))
        return result.scalar()

    async def list_jobs_in_status(self, statuses: Iterable[JobStatus]) -> list[Job]:
        """List jobs whose status is one of ``statuses``, oldest first."""
        result = await self.db.execute(
            select(Job)
            .where(Job.status.in_(list(statuses)))
            .order_by(Job.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def set_job_status(
        self,
        job_id: int,
        status: JobStatus,
        error: str = None,
    ) -> None:
        """Set job status, stamping completed_at for terminal statuses and clearing it otherwise."""
        terminal = status in TERMINAL_JOB_STATUSES
        await self.db.execute(
            update(Job)
            .where(Job.id == job_id)
            .values(
                status=status,
                completed_at=datetime.utcnow() if terminal else None,
                error=error,
            )
        )
        await self.db.commit()
        logger.info(f"Job {job_id} -> {status.value}")

    async def set_task_status(
        self,
        task_id: int,
        status: TaskStatus,
        output_image: bytes = None,
        output_mime_type: str = None,
        error: str = None,
        processing_time_ms: int = None,
    ) -> None:
        """
        Record a task transition.

        ``completed`` stores the output image, ``failed`` stores the error; both
        store the duration. Moving a task back to ``pending`` must go through
        :meth:`reset_task`, which also clears the stored outcome.
        """
        if status == TaskStatus.PENDING:
            raise ValidationError(f"Task {task_id} can only return to pending through a reset")
        if status == TaskStatus.COMPLETED and output_image is None:
            raise ValidationError(f"Task {task_id} cannot complete without an output image")
        if status == TaskStatus.FAILED and not error:
            raise ValidationError(f"Task {task_id} cannot fail without an error message")

        values = {
            "status": status,
            "output_image": output_image if status == TaskStatus.COMPLETED else None,
            "output_mime_type": output_mime_type if status == TaskStatus.COMPLETED else None,
            "error": error if status == TaskStatus.FAILED else None,
            "processing_time_ms": processing_time_ms,
        }
        await self.db.execute(update(Task).where(Task.id == task_id).values(**values))
        await self.db.commit()

    async def increment_job_progress(self, job_id: int, failed: bool) -> None:
        """Count one resolved task; also count it as failed if ``failed``."""
        values = {"completed_count": Job.completed_count + 1}
        if failed:
            values["failed_count"] = Job.failed_count + 1
        await self.db.execute(update(Job).where(Job.id == job_id).values(**values))
        await self.db.commit()

    async def reset_task(self, task_id: int, from_status: TaskStatus = None) -> bool:
        """
        Put a task back to pending and clear its outcome.

        With ``from_status`` the reset only applies if the task is currently in
        that status, so two concurrent retries cannot both succeed.

        Returns:
            True if a row was reset
        """
        statement = update(Task).where(Task.id == task_id)
        if from_status is not None:
            statement = statement.where(Task.status == from_status)
        result = await self.db.execute(
            statement.values(
                status=TaskStatus.PENDING,
                output_image=None,
                output_mime_type=None,
                error=None,
                processing_time_ms=None,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    async def decrement_job_progress_on_retry(self, job_id: int) -> None:
        """
        Uncount one failed task.

        Only valid for a task that was ``failed``; calling it for a task that
        completed successfully would break ``failed_count <= completed_count``.
        """
        await self.db.execute(
            update(Job)
            .where(Job.id == job_id, Job.failed_count > 0)
            .values(
                completed_count=Job.completed_count - 1,
                failed_count=Job.failed_count - 1,
            )
        )
        await self.db.commit()
