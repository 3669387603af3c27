"""Remote scheduler module."""

from schedkit.scheduler.facade import SchedulerFacade
from schedkit.scheduler.types import ScheduledTask, SchedulerStatus, TaskLog

__all__ = ["ScheduledTask", "SchedulerFacade", "SchedulerStatus", "TaskLog"]
