# Services
from .job_service import JobService
from .file_service import FileService
from .history_service import HistoryService
from .gateway import GenerationGateway
from .supervisor import JobSupervisor
from .task_runner import TaskRunner
from .processor import JobProcessor

__all__ = [
    "JobService",
    "FileService",
    "HistoryService",
    "GenerationGateway",
    "JobSupervisor",
    "TaskRunner",
    "JobProcessor",
]
