"""SQLAlchemy ORM model for single generation history."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, Text

from .job import Base


class History(Base):
    """One successful single-image generation."""

    __tablename__ = "history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_image = Column(LargeBinary, nullable=False)
    original_mime_type = Column(String(64), nullable=False)
    generated_image = Column(LargeBinary, nullable=False)
    generated_mime_type = Column(String(64), nullable=False)
    prompt = Column(Text, nullable=False)
    preset = Column(String(255), nullable=True)
    aspect_ratio = Column(String(16), nullable=True)
    processing_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<History(id={self.id}, created_at={self.created_at})>"
