"""Background job module."""

from schedkit.jobs.client import JobServiceClient, SubmitResponse
from schedkit.jobs.orchestrator import JobOrchestrator
from schedkit.jobs.store import JobStore, get_job_store
from schedkit.jobs.types import (
    Job,
    JobNotice,
    JobSkipped,
    JobStatus,
    SubmissionOutcome,
    SubmissionResult,
)

__all__ = [
    "Job",
    "JobNotice",
    "JobOrchestrator",
    "JobServiceClient",
    "JobSkipped",
    "JobStatus",
    "JobStore",
    "SubmissionOutcome",
    "SubmissionResult",
    "SubmitResponse",
    "get_job_store",
]
