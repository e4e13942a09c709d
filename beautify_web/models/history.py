"""Pydantic models for generation history."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .job import encode_image

PROMPT_PREVIEW_LENGTH = 100


def preview_prompt(prompt: str) -> str:
    if len(prompt) <= PROMPT_PREVIEW_LENGTH:
        return prompt
    return prompt[:PROMPT_PREVIEW_LENGTH] + "..."


class HistorySummary(BaseModel):
    """History entry without image payloads."""

    id: int = Field(description="History entry ID")
    prompt: str = Field(description="Prompt, truncated for listing")
    preset: Optional[str] = Field(default=None, description="Style preset label")
    aspect_ratio: Optional[str] = Field(default=None, description="Output aspect ratio")
    processing_time_ms: Optional[int] = Field(default=None, description="Generation time")
    created_at: datetime = Field(description="Entry creation timestamp")

    @classmethod
    def from_row(cls, entry) -> "HistorySummary":
        return cls(
            id=entry.id,
            prompt=preview_prompt(entry.prompt),
            preset=entry.preset,
            aspect_ratio=entry.aspect_ratio,
            processing_time_ms=entry.processing_time_ms,
            created_at=entry.created_at,
        )


class HistoryDetail(BaseModel):
    """History entry including base64 encoded images."""

    id: int
    original_image: str
    original_mime_type: str
    generated_image: str
    generated_mime_type: str
    prompt: str
    preset: Optional[str] = None
    aspect_ratio: Optional[str] = None
    processing_time_ms: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_row(cls, entry) -> "HistoryDetail":
        return cls(
            id=entry.id,
            original_image=encode_image(entry.original_image),
            original_mime_type=entry.original_mime_type,
            generated_image=encode_image(entry.generated_image),
            generated_mime_type=entry.generated_mime_type,
            prompt=entry.prompt,
            preset=entry.preset,
            aspect_ratio=entry.aspect_ratio,
            processing_time_ms=entry.processing_time_ms,
            created_at=entry.created_at,
        )


class HistoryThumbnail(BaseModel):
    """Just the generated image of an entry."""

    id: int
    generated_image: str
    generated_mime_type: str


class HistoryListResponse(BaseModel):
    """Response model for a page of history entries."""

    entries: list[HistorySummary] = Field(description="Entries, most recent first")
    total: int = Field(description="Total number of entries")
    limit: int = Field(description="Page size")
    offset: int = Field(description="Page offset")
    has_more: bool = Field(description="Whether more entries follow this page")
