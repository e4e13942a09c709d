"""Persistence of single generation history."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.history import History

logger = logging.getLogger(__name__)


class HistoryService:
    """Service for history entries of the synchronous generate endpoint."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_entry(
        self,
        original_image: bytes,
        original_mime_type: str,
        generated_image: bytes,
        generated_mime_type: str,
        prompt: str,
        preset: str = None,
        aspect_ratio: str = None,
        processing_time_ms: int = None,
    ) -> int:
        """Record one generation and return its ID."""
        entry = History(
            original_image=original_image,
            original_mime_type=original_mime_type,
            generated_image=generated_image,
            generated_mime_type=generated_mime_type,
            prompt=prompt,
            preset=preset,
            aspect_ratio=aspect_ratio,
            processing_time_ms=processing_time_ms,
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        await self.db.commit()
        logger.info(f"Saved history entry {entry.id}")
        return entry.id

    async def get_entry(self, entry_id: int) -> Optional[History]:
        result = await self.db.execute(select(History).where(History.id == entry_id))
        return result.scalar_one_or_none()

    async def list_entries(self, limit: int = 20, offset: int = 0) -> list[History]:
        """List entries, most recent first."""
        result = await self.db.execute(
            select(History)
            .order_by(History.created_at.desc(), History.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_entries(self) -> int:
        result = await self.db.execute(select(func.count(History.id)))
        return result.scalar()

    async def delete_entry(self, entry_id: int) -> bool:
        """
        Delete an entry.

        Returns:
            True if an entry was deleted
        """
        result = await self.db.execute(delete(History).where(History.id == entry_id))
        await self.db.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted history entry {entry_id}")
        return deleted
