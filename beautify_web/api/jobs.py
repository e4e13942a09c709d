"""Job creation, status, retry and cancel endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_db, get_processor, get_supervisor
from ..exceptions import JobNotFoundError, TaskNotFoundError, ValidationError
from ..models.job import (
    BatchJobCreate,
    DeckJobCreate,
    JobCreatedResponse,
    JobDetailResponse,
    JobListResponse,
    JobResponse,
    JobSpec,
    TaskDetail,
    TaskSummary,
)
from ..schemas.job import Job
from ..services.job_service import JobService
from ..services.processor import JobProcessor
from ..services.supervisor import JobSupervisor

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _http_error(e: ValidationError) -> HTTPException:
    if isinstance(e, (JobNotFoundError, TaskNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _job_response(job: Job, supervisor: JobSupervisor) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.is_processing = supervisor.is_active(job.id)
    return response


async def _create_job(spec: JobSpec, db: AsyncSession, processor: JobProcessor) -> JobCreatedResponse:
    job_service = JobService(db)
    try:
        job_id = await job_service.create_job(spec)
    except ValidationError as e:
        raise _http_error(e)

    job = await job_service.get_job(job_id)
    response = JobCreatedResponse(
        id=job.id,
        kind=job.kind,
        status=job.status,
        total_count=job.total_count,
        estimated_cost=job.estimated_cost,
    )

    # Fire and forget; clients poll GET /jobs/{id}
    processor.start(job_id)
    return response


@router.post("/batch", response_model=JobCreatedResponse, status_code=201)
async def create_batch_job(
    job_create: BatchJobCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    processor: Annotated[JobProcessor, Depends(get_processor)],
):
    """Create a batch job from a list of images and start processing it."""
    return await _create_job(job_create.to_spec(), db, processor)


@router.post("/deck", response_model=JobCreatedResponse, status_code=201)
async def create_deck_job(
    job_create: DeckJobCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    processor: Annotated[JobProcessor, Depends(get_processor)],
):
    """Create a deck job from extracted slide images and start processing it."""
    return await _create_job(job_create.to_spec(), db, processor)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    db: Annotated[AsyncSession, Depends(get_db)],
    supervisor: Annotated[JobSupervisor, Depends(get_supervisor)],
    limit: int = Query(default=20, ge=1, le=100, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Number of jobs to skip"),
):
    """List jobs, most recent first."""
    job_service = JobService(db)
    jobs = await job_service.list_jobs(limit=limit, offset=offset)
    return JobListResponse(
        jobs=[_job_response(job, supervisor) for job in jobs],
        total=await job_service.count_jobs(),
        limit=limit,
        offset=offset,
    )


@router.get("/{job_id}", response_model=JobDetailResponse)
async def get_job(
    job_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    supervisor: Annotated[JobSupervisor, Depends(get_supervisor)],
):
    """Get job status and per-task summaries."""
    job_service = JobService(db)
    job = await job_service.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    tasks = await job_service.get_tasks(job_id)
    return JobDetailResponse(
        **_job_response(job, supervisor).model_dump(),
        tasks=[TaskSummary.model_validate(task) for task in tasks],
    )


@router.get("/{job_id}/tasks/{task_id}", response_model=TaskDetail)
async def get_task(
    job_id: int,
    task_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get one task including its images."""
    job_service = JobService(db)
    task = await job_service.get_task(task_id)
    if task is None or task.job_id != job_id:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskDetail.from_row(task)


@router.post("/{job_id}/tasks/{task_id}/retry", response_model=JobResponse)
async def retry_task(
    job_id: int,
    task_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    processor: Annotated[JobProcessor, Depends(get_processor)],
):
    """Retry a failed task."""
    try:
        await processor.retry_task(job_id, task_id)
    except ValidationError as e:
        raise _http_error(e)
    job = await JobService(db).get_job(job_id)
    return _job_response(job, processor.supervisor)


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    processor: Annotated[JobProcessor, Depends(get_processor)],
):
    """Stop scheduling further tasks; the task in flight still finishes."""
    try:
        await processor.cancel(job_id)
    except ValidationError as e:
        raise _http_error(e)
    job = await JobService(db).get_job(job_id)
    return _job_response(job, processor.supervisor)


@router.post("/{job_id}/resume", response_model=JobResponse)
async def resume_job(
    job_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    processor: Annotated[JobProcessor, Depends(get_processor)],
):
    """Restart processing of a job's remaining pending tasks."""
    try:
        await processor.resume(job_id)
    except ValidationError as e:
        raise _http_error(e)
    job = await JobService(db).get_job(job_id)
    return _job_response(job, processor.supervisor)
