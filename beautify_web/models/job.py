"""Pydantic models for jobs, tasks and API payloads."""

import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config import settings


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class TaskStatus(str, Enum):
    """Task status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobKind(str, Enum):
    """What a job's tasks are and what happens after they drain."""

    BATCH = "batch"
    DECK = "deck"


MimeType = Literal["image/png", "image/jpeg", "image/webp"]
AspectRatio = Literal["16:9", "4:3", "1:1"]


def decode_image(value: str) -> bytes:
    """Decode a base64 image payload, rejecting malformed input."""
    if "," in value and value.startswith("data:"):
        value = value.split(",", 1)[1]
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image is not valid base64: {e}") from e
    if not data:
        raise ValueError("Image is empty")
    return data


def encode_image(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


# Work Store input


class TaskSpec(BaseModel):
    """One unit of work handed to the Work Store at job creation."""

    ordinal: int = Field(ge=1, description="Processing and reassembly position")
    image: bytes = Field(description="Source image bytes")
    mime_type: str = Field(description="Source image mime type")
    label: Optional[str] = Field(default=None, description="Original filename, if any")


class JobSpec(BaseModel):
    """Everything needed to create a job and its tasks."""

    kind: JobKind
    prompt: str
    preset: Optional[str] = None
    aspect_ratio: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    tasks: list[TaskSpec] = Field(default_factory=list)


# Requests


class BatchItemIn(BaseModel):
    """One image of a batch request."""

    filename: str = Field(min_length=1, description="Original filename")
    image: str = Field(description="Base64 encoded image")
    mime_type: MimeType = Field(description="Image mime type")

    @field_validator("image")
    @classmethod
    def _check_image(cls, value: str) -> str:
        decode_image(value)
        return value


class BatchJobCreate(BaseModel):
    """Request model for creating a batch job."""

    prompt: str = Field(min_length=1, description="Generation prompt")
    preset: Optional[str] = Field(default=None, description="Style preset label")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, description="Output aspect ratio")
    items: list[BatchItemIn] = Field(description="Images to process, in order")

    @field_validator("items")
    @classmethod
    def _check_items(cls, items: list[BatchItemIn]) -> list[BatchItemIn]:
        if not items:
            raise ValueError("At least one item is required")
        if len(items) > settings.max_batch_items:
            raise ValueError(f"Maximum {settings.max_batch_items} items per batch")
        return items

    def to_spec(self) -> JobSpec:
        return JobSpec(
            kind=JobKind.BATCH,
            prompt=self.prompt,
            preset=self.preset,
            aspect_ratio=self.aspect_ratio,
            tasks=[
                TaskSpec(
                    ordinal=position,
                    image=decode_image(item.image),
                    mime_type=item.mime_type,
                    label=item.filename,
                )
                for position, item in enumerate(self.items, start=1)
            ],
        )


class SlideIn(BaseModel):
    """One extracted slide image of a deck request."""

    slide_number: int = Field(ge=1, description="1-based slide number")
    image: str = Field(description="Base64 encoded PNG of the slide")

    @field_validator("image")
    @classmethod
    def _check_image(cls, value: str) -> str:
        decode_image(value)
        return value


class DeckJobCreate(BaseModel):
    """Request model for creating a deck job from already extracted slides."""

    filename: str = Field(min_length=1, description="Original deck filename")
    prompt: str = Field(min_length=1, description="Generation prompt")
    preset: Optional[str] = Field(default=None, description="Style preset label")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, description="Output aspect ratio")
    slide_width: Optional[float] = Field(default=None, gt=0, description="Slide width in inches")
    slide_height: Optional[float] = Field(default=None, gt=0, description="Slide height in inches")
    slides: list[SlideIn] = Field(description="Slides to process")

    @model_validator(mode="after")
    def _check_slides(self) -> "DeckJobCreate":
        if not self.slides:
            raise ValueError("At least one slide is required")
        if len(self.slides) > settings.max_deck_slides:
            raise ValueError(f"Maximum {settings.max_deck_slides} slides per deck")
        numbers = [slide.slide_number for slide in self.slides]
        if len(set(numbers)) != len(numbers):
            raise ValueError("Slide numbers must be unique")
        return self

    def to_spec(self) -> JobSpec:
        return JobSpec(
            kind=JobKind.DECK,
            prompt=self.prompt,
            preset=self.preset,
            aspect_ratio=self.aspect_ratio,
            details={
                "original_filename": self.filename,
                "slide_width": self.slide_width or settings.default_slide_width,
                "slide_height": self.slide_height or settings.default_slide_height,
            },
            tasks=[
                TaskSpec(
                    ordinal=slide.slide_number,
                    image=decode_image(slide.image),
                    mime_type="image/png",
                )
                for slide in self.slides
            ],
        )


# Responses


class JobCreatedResponse(BaseModel):
    """Response model for a newly created job."""

    id: int = Field(description="Job ID")
    kind: JobKind = Field(description="Job kind")
    status: JobStatus = Field(description="Current job status")
    total_count: int = Field(description="Number of tasks")
    estimated_cost: Optional[float] = Field(default=None, description="Estimated cost in USD")


class TaskSummary(BaseModel):
    """Task status without image payloads."""

    id: int = Field(description="Task ID")
    ordinal: int = Field(description="Position within the job")
    label: Optional[str] = Field(default=None, description="Original filename")
    status: TaskStatus = Field(description="Current task status")
    error: Optional[str] = Field(default=None, description="Error message if task failed")
    processing_time_ms: Optional[int] = Field(default=None, description="Generation time")
    has_result: bool = Field(default=False, description="Whether an output image exists")

    class Config:
        from_attributes = True


class TaskDetail(TaskSummary):
    """Task including base64 encoded input and output images."""

    input_image: str = Field(description="Base64 encoded source image")
    input_mime_type: str = Field(description="Source image mime type")
    output_image: Optional[str] = Field(default=None, description="Base64 encoded result")
    output_mime_type: Optional[str] = Field(default=None, description="Result mime type")

    @classmethod
    def from_row(cls, task) -> "TaskDetail":
        return cls(
            id=task.id,
            ordinal=task.ordinal,
            label=task.label,
            status=task.status,
            error=task.error,
            processing_time_ms=task.processing_time_ms,
            has_result=task.has_result,
            input_image=encode_image(task.input_image),
            input_mime_type=task.input_mime_type,
            output_image=encode_image(task.output_image),
            output_mime_type=task.output_mime_type,
        )


class JobResponse(BaseModel):
    """Response model for job information."""

    id: int = Field(description="Job ID")
    kind: JobKind = Field(description="Job kind")
    status: JobStatus = Field(description="Current job status")
    total_count: int = Field(description="Number of tasks")
    completed_count: int = Field(description="Tasks resolved, successes and failures")
    failed_count: int = Field(description="Tasks that failed")
    prompt: str = Field(description="Generation prompt")
    preset: Optional[str] = Field(default=None, description="Style preset label")
    aspect_ratio: Optional[str] = Field(default=None, description="Output aspect ratio")
    estimated_cost: Optional[float] = Field(default=None, description="Estimated cost in USD")
    details: dict[str, Any] = Field(default_factory=dict, description="Kind specific metadata")
    error: Optional[str] = Field(default=None, description="Error message if job failed")
    created_at: datetime = Field(description="Job creation timestamp")
    completed_at: Optional[datetime] = Field(default=None, description="Job completion timestamp")
    is_processing: bool = Field(default=False, description="Whether a drain is active")

    @property
    def succeeded_count(self) -> int:
        return self.completed_count - self.failed_count

    class Config:
        from_attributes = True


class JobDetailResponse(JobResponse):
    """Job information including task summaries."""

    tasks: list[TaskSummary] = Field(default_factory=list, description="Tasks by ordinal")


class JobListResponse(BaseModel):
    """Response model for a page of jobs."""

    jobs: list[JobResponse] = Field(description="Jobs, most recent first")
    total: int = Field(description="Total number of jobs")
    limit: int = Field(description="Page size")
    offset: int = Field(description="Page offset")
