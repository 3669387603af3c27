"""Submission and polling of background jobs."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from loguru import logger

from schedkit.errors import JobPollingFailed, JobSubmissionFailed
from schedkit.jobs.client import JobServiceClient
from schedkit.jobs.store import JobStore, get_job_store
from schedkit.jobs.types import (
    Job,
    JobNotice,
    JobStatus,
    SubmissionOutcome,
    SubmissionResult,
)

CompletionHandler = Callable[[Job], Awaitable[None] | None]
NoticeCallback = Callable[[JobNotice], None]


class JobOrchestrator:
    """
    Submits background jobs and keeps the job store in sync with the server.

    Submissions are inserted optimistically and reconciled with the server's
    answer. Accepted jobs are polled until they reach a terminal status; the
    polling loop exits on its own once no pending job of a watched type is
    left, and the next accepted submission starts it again.
    """

    def __init__(
        self,
        client: JobServiceClient,
        store: JobStore | None = None,
        poll_interval: float = 3.0,
        watched_types: Iterable[str] | None = None,
        notify: NoticeCallback | None = None,
    ) -> None:
        self.client = client
        self.store = store if store is not None else get_job_store()
        self.poll_interval = poll_interval
        self.watched_types = set(watched_types) if watched_types else None
        self.notify = notify
        self._handlers: dict[str, list[CompletionHandler]] = {}
        self._poll_task: asyncio.Task[None] | None = None
        self._finished: set[str] = set()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def on_complete(self, job_type: str, handler: CompletionHandler) -> None:
        """Register a handler called once when a job of `job_type` completes."""
        self._handlers.setdefault(job_type, []).append(handler)

    async def submit(self, job_type: str, dedup_key: str, payload: dict[str, Any]) -> SubmissionResult:
        """
        Submit a unit of work.

        Args:
            job_type: Job type tag, e.g. "keyword-generation".
            dedup_key: Subject of the work, used to detect duplicates.
            payload: Job-specific data sent to the job service.

        Returns:
            CREATED with the confirmed job, SKIPPED with the server's notice, or
            DUPLICATE with the job already in progress (no request is made).

        Raises:
            JobSubmissionFailed: If the job service rejected the submission.
        """
        existing = self.store.by_dedup_key(job_type, dedup_key)
        if existing and not existing.is_terminal:
            logger.info(f"{job_type} job for '{dedup_key}' already in progress ({existing.id})")
            return SubmissionResult(SubmissionOutcome.DUPLICATE, job=existing)

        temp = Job.optimistic(job_type, dedup_key, payload)
        self.store.add(temp)
        logger.debug(f"Optimistic {job_type} job {temp.id} for '{dedup_key}'")

        try:
            response = await self.client.submit(job_type, payload, dedup_key)
        except JobSubmissionFailed as e:
            self.store.remove(temp.id)
            logger.error(f"{job_type} submission for '{dedup_key}' failed: {e.message}")
            self._emit(JobNotice("error", "Job submission failed", e.message, job_type, dedup_key))
            raise
        except BaseException:
            self.store.remove(temp.id)
            raise

        if response.skipped is not None:
            self.store.remove(temp.id)
            logger.info(f"{job_type} job for '{dedup_key}' skipped: {response.skipped.message}")
            self._emit(
                JobNotice("warning", "Job skipped", response.skipped.message, job_type, dedup_key)
            )
            return SubmissionResult(SubmissionOutcome.SKIPPED, skipped=response.skipped)

        accepted = response.job
        if not self.store.swap(temp.id, accepted):
            logger.debug(f"{job_type} job {accepted.id} was already merged by a poll")
        job = self.store.get(accepted.id) or accepted
        logger.info(f"{job_type} job {job.id} accepted for '{dedup_key}' ({job.status.value})")
        self._emit(
            JobNotice("info", "Job submitted", f"{job_type} started for {dedup_key}", job_type, dedup_key)
        )

        if job.is_terminal and not accepted.is_terminal:
            # A poll saw the job finish first, before this submission knew its id.
            await self._on_terminal(job)
        elif not job.is_terminal:
            self.ensure_polling()
        return SubmissionResult(SubmissionOutcome.CREATED, job=job)

    async def load(self) -> list[Job]:
        """
        Replace the store content with the server's job snapshot.

        Optimistic jobs of in-flight submissions are kept. Polling starts if
        the snapshot contains pending work.

        Raises:
            JobPollingFailed: If the snapshot cannot be fetched.
        """
        jobs = [job for job in await self.client.list_jobs(self._poll_type()) if self._is_watched(job)]
        in_flight = [job for job in self.store.all() if job.is_local]
        self.store.replace_all(jobs + in_flight)
        logger.info(f"Loaded {len(jobs)} jobs from job service")

        if self._has_pending_work():
            self.ensure_polling()
        return jobs

    def ensure_polling(self) -> None:
        """Start the polling loop unless it is already running."""
        if not self.is_polling:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def poll_once(self) -> None:
        """Fetch the job snapshot and merge it into the store."""
        try:
            jobs = await self.client.list_jobs(self._poll_type())
        except JobPollingFailed as e:
            logger.warning(f"Job poll failed, retrying in {self.poll_interval}s: {e}")
            return

        for job in jobs:
            if not self._is_watched(job):
                continue
            before = self.store.get(job.id)
            if not self.store.merge(job):
                continue
            if before is not None and not before.is_terminal and job.is_terminal:
                await self._on_terminal(self.store.get(job.id) or job)

    async def join(self, timeout: float | None = None) -> None:
        """Wait for the current polling loop to finish."""
        task = self._poll_task
        if task is None:
            return
        await asyncio.wait_for(asyncio.shield(task), timeout)

    async def aclose(self) -> None:
        """Cancel the polling loop, e.g. on shutdown."""
        task = self._poll_task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._poll_task = None

    def is_in_progress(self, job_type: str, dedup_key: str) -> bool:
        job = self.store.by_dedup_key(job_type, dedup_key)
        return job is not None and not job.is_terminal

    def status_label(self, job_type: str, dedup_key: str) -> str:
        """Short display string for the job of a unit of work, "" if there is none."""
        job = self.store.by_dedup_key(job_type, dedup_key)
        if job is None:
            return ""
        if job.status in (JobStatus.PROCESSING, JobStatus.ACTIVE):
            return f"{job.status.value.capitalize()} {job.progress}%"
        return job.status.value.capitalize()

    async def _poll_loop(self) -> None:
        logger.info(f"Job polling started (interval: {self.poll_interval}s)")
        try:
            while self._has_pending_work():
                await asyncio.sleep(self.poll_interval)
                try:
                    await self.poll_once()
                except Exception as e:
                    logger.error(f"Job poll tick failed: {e}")
        finally:
            if self._poll_task is asyncio.current_task():
                self._poll_task = None
            logger.info("Job polling stopped")

    async def _on_terminal(self, job: Job) -> None:
        if job.id in self._finished:
            return
        self._finished.add(job.id)

        if job.status is JobStatus.FAILED:
            logger.warning(f"{job.type} job {job.id} failed: {job.error}")
            self._emit(
                JobNotice("error", "Job failed", job.error or "Unknown error", job.type, job.dedup_key)
            )
            return

        logger.info(f"{job.type} job {job.id} completed")
        self._emit(
            JobNotice("success", "Job completed", f"{job.type} finished for {job.dedup_key}", job.type, job.dedup_key)
        )
        for handler in self._handlers.get(job.type, []):
            try:
                result = handler(job)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Completion handler for {job.type} job {job.id} failed: {e}")

    def _emit(self, notice: JobNotice) -> None:
        if self.notify is None:
            return
        try:
            self.notify(notice)
        except Exception as e:
            logger.error(f"Job notice callback failed: {e}")

    def _has_pending_work(self) -> bool:
        return self.store.has_pending(self.watched_types)

    def _is_watched(self, job: Job) -> bool:
        return self.watched_types is None or job.type in self.watched_types

    def _poll_type(self) -> str | None:
        if self.watched_types and len(self.watched_types) == 1:
            return next(iter(self.watched_types))
        return None
