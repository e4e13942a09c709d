"""Single image generation endpoint."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_db, get_gateway
from ..models.generation import GenerateRequest, GenerateResponse, GenerationSuccess
from ..models.job import decode_image, encode_image
from ..services.history_service import HistoryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    request: GenerateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway=Depends(get_gateway),
):
    """Generate one image synchronously, without creating a job, and record it in history."""
    source = decode_image(request.image)
    start = time.monotonic()
    result = await gateway.generate(
        source,
        request.mime_type,
        request.prompt,
        request.aspect_ratio,
    )
    elapsed_ms = int((time.monotonic() - start) * 1000)

    if isinstance(result, GenerationSuccess):
        history_id = await HistoryService(db).save_entry(
            original_image=source,
            original_mime_type=request.mime_type,
            generated_image=result.image,
            generated_mime_type=result.mime_type,
            prompt=request.prompt,
            preset=request.preset,
            aspect_ratio=request.aspect_ratio,
            processing_time_ms=elapsed_ms,
        )
        return GenerateResponse(
            success=True,
            image=encode_image(result.image),
            mime_type=result.mime_type,
            processing_time_ms=elapsed_ms,
            history_id=history_id,
        )

    logger.warning(f"Single generation failed ({result.kind.value}): {result.message}")
    response = GenerateResponse(
        success=False,
        error=result.message,
        error_kind=result.kind,
        processing_time_ms=elapsed_ms,
    )
    return JSONResponse(status_code=502, content=response.model_dump(mode="json"))
