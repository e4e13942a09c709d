# Pydantic models
from .job import JobKind, JobSpec, JobStatus, TaskSpec, TaskStatus
from .generation import FailureKind, GenerationFailure, GenerationResult, GenerationSuccess

__all__ = [
    "JobKind",
    "JobSpec",
    "JobStatus",
    "TaskSpec",
    "TaskStatus",
    "FailureKind",
    "GenerationFailure",
    "GenerationResult",
    "GenerationSuccess",
]
