"""Exceptions raised by the job engine."""


class BeautifyError(Exception):
    """Base class for engine errors."""


class ValidationError(BeautifyError):
    """Caller supplied invalid input or referenced an invalid state."""


class JobNotFoundError(ValidationError):
    def __init__(self, job_id: int):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class TaskNotFoundError(ValidationError):
    def __init__(self, task_id: int, job_id: int = None):
        if job_id is None:
            message = f"Task {task_id} not found"
        else:
            message = f"Task {task_id} not found in job {job_id}"
        super().__init__(message)
        self.task_id = task_id
        self.job_id = job_id


class AssemblyError(BeautifyError):
    """Raised when per-task outputs cannot be composed into a deliverable."""


class GatewayConfigurationError(BeautifyError):
    """Raised when the generation gateway is missing its credential."""
