"""Single generation history endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_db
from ..models.history import HistoryDetail, HistoryListResponse, HistorySummary, HistoryThumbnail
from ..models.job import encode_image
from ..services.history_service import HistoryService

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=HistoryListResponse)
async def list_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=20, ge=1, le=100, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Number of entries to skip"),
):
    """List history entries, most recent first, without images."""
    history_service = HistoryService(db)
    entries = await history_service.list_entries(limit=limit, offset=offset)
    total = await history_service.count_entries()
    return HistoryListResponse(
        entries=[HistorySummary.from_row(entry) for entry in entries],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(entries) < total,
    )


@router.get("/{entry_id}", response_model=HistoryDetail)
async def get_history_entry(
    entry_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a history entry with both images."""
    entry = await HistoryService(db).get_entry(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return HistoryDetail.from_row(entry)


@router.get("/{entry_id}/thumbnail", response_model=HistoryThumbnail)
async def get_history_thumbnail(
    entry_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    entry = await HistoryService(db).get_entry(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return HistoryThumbnail(
        id=entry.id,
        generated_image=encode_image(entry.generated_image),
        generated_mime_type=entry.generated_mime_type,
    )


@router.delete("/{entry_id}")
async def delete_history_entry(
    entry_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a history entry."""
    if not await HistoryService(db).delete_entry(entry_id):
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"success": True}
