"""Results download endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_db
from ..models.job import JobKind, JobStatus, TaskStatus
from ..services.file_service import FileService
from ..services.job_kinds import default_kinds
from ..services.job_service import JobService

router = APIRouter(prefix="/jobs", tags=["results"])

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


@router.get("/{job_id}/results/download")
async def download_results(
    job_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Download a job's deliverable.

    Batch jobs return a ZIP of every successfully generated image, available
    as soon as one exists. Deck jobs return the assembled presentation once
    the job is completed.
    """
    job_service = JobService(db)

    # Verify job exists
    job = await job_service.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if job.kind == JobKind.DECK:
        if job.status != JobStatus.COMPLETED:
            raise HTTPException(
                status_code=400,
                detail=f"Job is not completed (status: {job.status.value})",
            )
        filename = default_kinds()[job.kind].artifact_filename(job)
        file_path = FileService.get_results_path(job_id) / filename
        if not file_path.exists():
            raise HTTPException(status_code=404, detail="No results available")
        return FileResponse(path=file_path, filename=filename, media_type=PPTX_MEDIA_TYPE)

    tasks = await job_service.get_tasks(job_id)
    files = [
        (
            FileService.output_filename(task.label, task.ordinal, task.output_mime_type),
            task.output_image,
        )
        for task in tasks
        if task.status == TaskStatus.COMPLETED and task.output_image is not None
    ]
    if not files:
        raise HTTPException(status_code=400, detail="No completed items to download")

    return Response(
        content=FileService.build_zip(files),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="batch-{job_id}-beautified.zip"'},
    )
