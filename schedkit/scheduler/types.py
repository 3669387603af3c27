"""Scheduled task type definitions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from schedkit.utils.helpers import parse_timestamp


@dataclass
class TaskLog:
    """One log line recorded by the scheduler for a task run."""

    timestamp: datetime | None
    level: str
    message: str
    task_id: str | None = None
    details: Any = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "TaskLog":
        return cls(
            timestamp=parse_timestamp(data.get("timestamp")),
            level=str(data.get("level", "info")),
            message=str(data.get("message", "")),
            task_id=data.get("taskId"),
            details=data.get("details"),
        )


@dataclass
class ScheduledTask:
    """A task registered with the remote scheduler."""

    id: str
    name: str
    cron_expression: str
    enabled: bool = True
    is_running: bool = False
    last_run: datetime | None = None
    next_run: datetime | None = None
    log_count: int = 0

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ScheduledTask":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            cron_expression=str(data.get("cronExpression", "")),
            enabled=bool(data.get("enabled", True)),
            is_running=bool(data.get("isRunning", False)),
            last_run=parse_timestamp(data.get("lastRun")),
            next_run=parse_timestamp(data.get("nextRun")),
            log_count=len(data.get("logs") or []),
        )


@dataclass
class SchedulerStatus:
    """Overall scheduler state."""

    is_running: bool = False
    task_count: int = 0
    enabled_task_count: int = 0
    next_task: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "SchedulerStatus":
        next_task = dict(data.get("nextTask") or {})
        if "nextRun" in next_task:
            next_task["nextRun"] = parse_timestamp(next_task["nextRun"])
        return cls(
            is_running=bool(data.get("isRunning", False)),
            task_count=int(data.get("taskCount", 0)),
            enabled_task_count=int(data.get("enabledTaskCount", 0)),
            next_task=next_task,
        )
