"""In-memory job registry shared across the process."""

import threading
from collections.abc import Iterable

from loguru import logger

from schedkit.jobs.types import Job


class JobStore:
    """
    Registry of jobs keyed by id.

    Every mutation runs under one lock, and every read returns copies, so
    callers never hold live references into the store.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def add(self, job: Job) -> None:
        """Insert or replace a job by id."""
        with self._lock:
            self._jobs[job.id] = job.copy()

    def remove(self, job_id: str) -> bool:
        """Remove a job by id."""
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def swap(self, old_id: str, job: Job) -> bool:
        """
        Replace one job with another in a single step.

        If a record with the new id is already stored, e.g. merged by a poll
        while the submission was in flight, the replacement goes through the
        same forward-only rules as `merge`.

        Returns:
            True if the replacement was stored, False if the existing record
            was kept.
        """
        with self._lock:
            self._jobs.pop(old_id, None)
            return self._apply(job)

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.copy() if job else None

    def all(self) -> list[Job]:
        with self._lock:
            return [job.copy() for job in self._jobs.values()]

    def by_type(self, job_type: str) -> list[Job]:
        with self._lock:
            return [job.copy() for job in self._jobs.values() if job.type == job_type]

    def by_dedup_key(self, job_type: str, dedup_key: str) -> Job | None:
        """
        Find the job for a unit of work.

        A non-terminal match wins over terminal ones; among equals the most
        recently submitted job is returned.
        """
        with self._lock:
            matches = [
                job
                for job in self._jobs.values()
                if job.type == job_type and job.dedup_key == dedup_key
            ]
            if not matches:
                return None
            best = max(matches, key=lambda job: (not job.is_terminal, job.submitted_at))
            return best.copy()

    def has_pending(self, job_types: Iterable[str] | None = None) -> bool:
        """True if a non-terminal job exists for the given types (all types if None)."""
        types = set(job_types) if job_types is not None else None
        with self._lock:
            return any(
                not job.is_terminal and (types is None or job.type in types)
                for job in self._jobs.values()
            )

    def merge(self, job: Job) -> bool:
        """
        Merge an authoritative job record, only ever moving status forward.

        Returns:
            True if the record was applied, False if it was discarded as stale.
        """
        with self._lock:
            return self._apply(job)

    def _apply(self, job: Job) -> bool:
        # Caller holds self._lock.
        current = self._jobs.get(job.id)
        if current is None:
            self._jobs[job.id] = job.copy()
            return True

        stale = job.status.rank < current.status.rank
        if stale or (current.is_terminal and job.status is not current.status):
            logger.debug(
                f"Discarding {'stale' if stale else 'post-terminal'} update for job {job.id}: "
                f"{current.status.value} -> {job.status.value}"
            )
            if current.dedup_key is None:
                current.dedup_key = job.dedup_key
            return False

        merged = job.copy()
        if merged.dedup_key is None:
            merged.dedup_key = current.dedup_key
        self._jobs[job.id] = merged
        return True

    def replace_all(self, jobs: Iterable[Job]) -> None:
        """Replace the whole store content, e.g. from a server snapshot."""
        with self._lock:
            self._jobs = {job.id: job.copy() for job in jobs}

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


_default_store: JobStore | None = None


def get_job_store() -> JobStore:
    """Return the process-wide job store."""
    global _default_store
    if _default_store is None:
        _default_store = JobStore()
    return _default_store
