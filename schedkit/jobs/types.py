"""Background job type definitions."""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from schedkit.utils.helpers import parse_timestamp

LOCAL_ID_PREFIX = "local-"

# Wire fields the job service may send at the top level; kept in metadata.
_METADATA_FIELDS = ("position", "estimatedWaitTime", "pollUrl")


class JobStatus(str, Enum):
    """Lifecycle status of a background job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        """Position in the forward-only lifecycle."""
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @classmethod
    def normalize(cls, value: str) -> "JobStatus":
        """Map a wire status to a JobStatus; raises ValueError for unknown values."""
        if isinstance(value, JobStatus):
            return value
        text = str(value).strip().lower()
        return cls(_STATUS_ALIASES.get(text, text))


_STATUS_RANK = {
    JobStatus.QUEUED: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.ACTIVE: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.FAILED: 2,
}

_STATUS_ALIASES = {
    "pending": "queued",
    "running": "processing",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    """Temporary id for a job that the server has not accepted yet."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:8]}"


@dataclass
class Job:
    """A unit of background work tracked by the job store."""

    id: str
    type: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    dedup_key: str | None = None
    result: Any = None
    error: str | None = None
    submitted_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_local(self) -> bool:
        """True while the job only exists as an optimistic local record."""
        return self.id.startswith(LOCAL_ID_PREFIX)

    def copy(self) -> "Job":
        return copy.deepcopy(self)

    @classmethod
    def optimistic(cls, job_type: str, dedup_key: str, payload: dict[str, Any] | None = None) -> "Job":
        """Create the local placeholder inserted before the server responds."""
        return cls(
            id=new_local_id(),
            type=job_type,
            dedup_key=dedup_key,
            metadata=dict(payload or {}),
        )

    @classmethod
    def from_payload(
        cls,
        data: dict[str, Any],
        dedup_key: str | None = None,
        dedup_field: str | None = None,
    ) -> "Job":
        """
        Build a Job from a job-service record.

        Args:
            data: Record as returned by the job service (camelCase keys).
            dedup_key: Correlation key to force, e.g. the key used at submission.
            dedup_field: Metadata field to read the key from when the record
                carries no `dedupKey`.

        Returns:
            The normalized job.

        Raises:
            ValueError: If the record has no id or an unknown status.
            TypeError: If `progress` is not a number.
        """
        job_id = data.get("id") or data.get("jobId")
        if not job_id:
            raise ValueError("Job record has no id")

        metadata = dict(data.get("metadata") or {})
        for name in _METADATA_FIELDS:
            if data.get(name) is not None:
                metadata.setdefault(name, data[name])

        status = JobStatus.normalize(data.get("status", JobStatus.QUEUED.value))
        progress = max(0, min(100, int(data.get("progress") or 0)))
        if status is JobStatus.COMPLETED:
            progress = 100

        key = dedup_key or data.get("dedupKey")
        if key is None and dedup_field:
            key = metadata.get(dedup_field) or data.get(dedup_field)

        return cls(
            id=str(job_id),
            type=str(data.get("type", "")),
            status=status,
            progress=progress,
            dedup_key=str(key) if key is not None else None,
            result=data.get("result"),
            error=data.get("error"),
            submitted_at=parse_timestamp(data.get("submittedAt")) or _utcnow(),
            completed_at=parse_timestamp(data.get("completedAt")),
            metadata=metadata,
        )


class SubmissionOutcome(Enum):
    """How a submission ended."""

    CREATED = "created"
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"


@dataclass
class JobSkipped:
    """Notice that the server already holds the requested work."""

    message: str
    existing_count: int | None = None


@dataclass
class SubmissionResult:
    """Result of JobOrchestrator.submit."""

    outcome: SubmissionOutcome
    job: Job | None = None
    skipped: JobSkipped | None = None


@dataclass
class JobNotice:
    """User-facing notification about a job event."""

    level: str  # info / success / warning / error
    title: str
    message: str
    job_type: str
    dedup_key: str | None = None
