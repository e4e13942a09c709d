"""Task Runner: executes one task against the generation gateway."""

import logging
import time

from ..models.generation import GenerationSuccess
from ..models.job import TaskStatus
from ..schemas.job import Job, Task
from .job_service import JobService

logger = logging.getLogger(__name__)


class TaskRunner:
    """Runs a single task to a terminal state and records the outcome."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def run_task(self, store: JobService, job: Job, task: Task) -> TaskStatus:
        """
        Process ``task`` and return its terminal status.

        Gateway failures and unexpected gateway exceptions become a ``failed``
        task; they never propagate. Work Store errors do propagate.
        """
        await store.set_task_status(task.id, TaskStatus.PROCESSING)
        logger.info(f"Processing task {task.id} (job {job.id}, ordinal {task.ordinal})")

        start = time.monotonic()
        try:
            result = await self.gateway.generate(
                task.input_image,
                task.input_mime_type,
                job.prompt,
                job.aspect_ratio,
            )
        except Exception as e:
            logger.exception(f"Task {task.id} raised during generation: {e}")
            result = None
            error = str(e) or type(e).__name__
        else:
            error = None if isinstance(result, GenerationSuccess) else result.message or result.kind.value
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if isinstance(result, GenerationSuccess):
            await store.set_task_status(
                task.id,
                TaskStatus.COMPLETED,
                output_image=result.image,
                output_mime_type=result.mime_type,
                processing_time_ms=elapsed_ms,
            )
            await store.increment_job_progress(job.id, failed=False)
            logger.info(f"Task {task.id} completed in {elapsed_ms}ms")
            return TaskStatus.COMPLETED

        await store.set_task_status(
            task.id,
            TaskStatus.FAILED,
            error=error,
            processing_time_ms=elapsed_ms,
        )
        await store.increment_job_progress(job.id, failed=True)
        logger.warning(f"Task {task.id} failed after {elapsed_ms}ms: {error}")
        return TaskStatus.FAILED
