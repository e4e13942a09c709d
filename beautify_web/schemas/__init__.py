# ORM models
from .job import Base, Job, Task
from .history import History

__all__ = ["Base", "Job", "Task", "History"]
