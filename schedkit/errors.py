"""Exceptions raised by schedkit."""


class SchedkitError(Exception):
    """Base class for all schedkit errors."""


class InvalidCronExpression(SchedkitError, ValueError):
    """Raised when a cron string does not have exactly five fields."""

    def __init__(self, expression: str, reason: str = "") -> None:
        detail = reason or f"expected 5 fields, got {len(expression.split())}"
        super().__init__(f"Invalid cron expression '{expression}': {detail}")
        self.expression = expression


class InvalidRecurrence(SchedkitError, ValueError):
    """Raised when a structured recurrence cannot be rendered as cron."""


class JobSubmissionFailed(SchedkitError):
    """Raised when the job service rejects a submission or cannot be reached."""

    def __init__(self, job_type: str, dedup_key: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"Submission of {job_type} job for '{dedup_key}' failed: {message}")
        self.job_type = job_type
        self.dedup_key = dedup_key
        self.message = message
        self.status_code = status_code


class JobPollingFailed(SchedkitError):
    """Raised by the job client when a job snapshot cannot be fetched."""


class SchedulerError(SchedkitError):
    """Raised when the scheduler service cannot be read."""


class TaskMutationFailed(SchedulerError):
    """Raised when the scheduler service rejects a task mutation."""

    def __init__(self, action: str, task_id: str | None, message: str) -> None:
        target = f" on task {task_id}" if task_id else ""
        super().__init__(f"Scheduler action '{action}'{target} failed: {message}")
        self.action = action
        self.task_id = task_id
        self.message = message
