"""Per-kind behaviour plugged into the job processor."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from ..config import settings
from ..models.job import JobKind, TaskStatus
from ..schemas.job import Job, Task
from .assembly import SlideImage, compose_deck
from .file_service import FileService

logger = logging.getLogger(__name__)


class JobKindHandler:
    """Default behaviour: tasks are independent and nothing runs after the drain."""

    kind: JobKind = None
    requires_assembly = False

    def artifact_filename(self, job: Job) -> Optional[str]:
        return None

    async def assemble(self, job: Job, tasks: list[Task]) -> Optional[Path]:
        return None


class BatchKind(JobKindHandler):
    """Independent images; each task's output is delivered on its own."""

    kind = JobKind.BATCH


class DeckKind(JobKindHandler):
    """Slides of one presentation, composed back into a single deck after the drain."""

    kind = JobKind.DECK
    requires_assembly = True

    def __init__(self, composer: Callable[[list[SlideImage], float, float], bytes] = compose_deck):
        self.composer = composer

    def artifact_filename(self, job: Job) -> str:
        original = job.details.get("original_filename") or f"deck-{job.id}.pptx"
        return f"{Path(original).stem}-beautified.pptx"

    @staticmethod
    def collect_slides(tasks: list[Task]) -> list[SlideImage]:
        """Generated image per slide, falling back to the source image where generation failed."""
        slides = []
        for task in sorted(tasks, key=lambda t: t.ordinal):
            if task.status == TaskStatus.COMPLETED and task.output_image is not None:
                slides.append(SlideImage(task.ordinal, task.output_image, task.output_mime_type))
            elif task.status == TaskStatus.FAILED:
                slides.append(SlideImage(task.ordinal, task.input_image, task.input_mime_type))
            else:
                logger.warning(f"Slide {task.ordinal} of job {task.job_id} is {task.status.value}, skipping")
        return slides

    async def assemble(self, job: Job, tasks: list[Task]) -> Path:
        slides = self.collect_slides(tasks)
        details = job.details
        width = details.get("slide_width") or settings.default_slide_width
        height = details.get("slide_height") or settings.default_slide_height

        # python-pptx is blocking
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self.composer, slides, width, height)

        path = await FileService.save_result(job.id, self.artifact_filename(job), data)
        logger.info(f"Deck job {job.id} assembled {len(slides)} slides, {len(data)} bytes")
        return path


def default_kinds() -> dict[JobKind, JobKindHandler]:
    return {JobKind.BATCH: BatchKind(), JobKind.DECK: DeckKind()}
