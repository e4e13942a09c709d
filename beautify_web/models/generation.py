"""Pydantic models for image generation outcomes."""

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .job import AspectRatio, MimeType, decode_image


class FailureKind(str, Enum):
    """Classified reasons a generation call did not produce an image."""

    NO_RESPONSE = "no_response"
    SAFETY_FILTERED = "safety_filtered"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class GenerationSuccess(BaseModel):
    ok: Literal[True] = True
    image: bytes
    mime_type: str


class GenerationFailure(BaseModel):
    ok: Literal[False] = False
    message: str
    kind: FailureKind = FailureKind.UNKNOWN


GenerationResult = Union[GenerationSuccess, GenerationFailure]


class GenerateRequest(BaseModel):
    """Request model for a single synchronous generation."""

    image: str = Field(description="Base64 encoded source image")
    mime_type: MimeType = Field(description="Source image mime type")
    prompt: str = Field(min_length=1, description="Generation prompt")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, description="Output aspect ratio")
    preset: Optional[str] = Field(default=None, description="Style preset label")

    @field_validator("image")
    @classmethod
    def _check_image(cls, value: str) -> str:
        decode_image(value)
        return value


class GenerateResponse(BaseModel):
    """Response model for a single synchronous generation."""

    success: bool
    image: Optional[str] = None
    mime_type: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None
    processing_time_ms: int
    history_id: Optional[int] = None
