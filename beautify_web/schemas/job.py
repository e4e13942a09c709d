"""SQLAlchemy ORM models for jobs and tasks."""

import json
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from ..models.job import JobKind, JobStatus, TaskStatus

Base = declarative_base()


class Job(Base):
    """Job database model."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(Enum(JobKind), nullable=False)
    status = Column(
        Enum(JobStatus),
        default=JobStatus.PENDING,
        nullable=False,
    )
    total_count = Column(Integer, nullable=False)
    completed_count = Column(Integer, default=0, nullable=False)
    failed_count = Column(Integer, default=0, nullable=False)
    prompt = Column(Text, nullable=False)
    preset = Column(String(255), nullable=True)
    aspect_ratio = Column(String(16), nullable=True)
    estimated_cost = Column(Float, nullable=True)
    details_json = Column(Text, nullable=False, default="{}")  # JSON serialized kind metadata
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    @property
    def details(self) -> dict:
        return json.loads(self.details_json or "{}")

    def __repr__(self):
        return (
            f"<Job(id={self.id}, kind={self.kind}, status={self.status}, "
            f"completed={self.completed_count}/{self.total_count}, failed={self.failed_count})>"
        )


class Task(Base):
    """Task database model, one image of a job."""

    __tablename__ = "tasks"
    __table_args__ = (UniqueConstraint("job_id", "ordinal", name="uq_tasks_job_ordinal"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    ordinal = Column(Integer, nullable=False)
    label = Column(String(255), nullable=True)
    status = Column(
        Enum(TaskStatus),
        default=TaskStatus.PENDING,
        nullable=False,
    )
    input_image = Column(LargeBinary, nullable=False)
    input_mime_type = Column(String(64), nullable=False)
    output_image = Column(LargeBinary, nullable=True)
    output_mime_type = Column(String(64), nullable=True)
    error = Column(Text, nullable=True)
    processing_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def has_result(self) -> bool:
        return self.output_image is not None

    def __repr__(self):
        return f"<Task(id={self.id}, job_id={self.job_id}, ordinal={self.ordinal}, status={self.status})>"
