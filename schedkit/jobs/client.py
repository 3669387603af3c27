"""HTTP client for the remote job service."""

import re
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from schedkit.errors import JobPollingFailed, JobSubmissionFailed
from schedkit.jobs.types import Job, JobSkipped
from schedkit.utils.helpers import format_error
from schedkit.utils.http import ServiceClient

_EXISTING_COUNT = re.compile(r"already has (\d+)", re.IGNORECASE)


@dataclass
class SubmitResponse:
    """Server answer to a submission: either an accepted job or a skip notice."""

    job: Job | None = None
    skipped: JobSkipped | None = None


class JobServiceClient(ServiceClient):
    """
    Client for `POST jobs` / `GET jobs`.

    `dedup_fields` maps a job type to the metadata field that identifies its
    subject (for example `keyword-generation -> industry`), used when a
    record from the server carries no `dedupKey`.
    """

    def __init__(
        self,
        api_base: str,
        token: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        dedup_fields: dict[str, str] | None = None,
    ) -> None:
        super().__init__(api_base, token=token, timeout=timeout, client=client)
        self.dedup_fields = dict(dedup_fields or {})

    async def submit(self, job_type: str, data: dict[str, Any], dedup_key: str) -> SubmitResponse:
        """
        Submit a job.

        Args:
            job_type: Job type tag.
            data: Job-specific payload.
            dedup_key: Correlation key attached to the accepted job.

        Returns:
            The accepted job or a skip notice.

        Raises:
            JobSubmissionFailed: On transport errors or any other server answer.
        """
        try:
            response = await self._request("POST", "jobs", json={"type": job_type, "data": data})
        except httpx.HTTPError as e:
            raise JobSubmissionFailed(job_type, dedup_key, format_error(e)) from e

        body = self._json(response)
        if not isinstance(body, dict):
            body = {}

        if response.status_code == 409 or body.get("skipped"):
            return SubmitResponse(skipped=self._skip_notice(body))

        record = body.get("job")
        if response.is_success and isinstance(record, dict):
            try:
                job = Job.from_payload({"type": job_type, **record}, dedup_key=dedup_key)
            except (ValueError, TypeError) as e:
                raise JobSubmissionFailed(
                    job_type, dedup_key, f"Malformed job record: {e}", response.status_code
                ) from e
            return SubmitResponse(job=job)

        raise JobSubmissionFailed(
            job_type, dedup_key, self._error_message(response), response.status_code
        )

    async def list_jobs(self, job_type: str | None = None) -> list[Job]:
        """
        Fetch the authoritative job snapshot.

        Args:
            job_type: Restrict the snapshot to one job type.

        Returns:
            Parsed jobs; malformed records are skipped with a warning.

        Raises:
            JobPollingFailed: If the snapshot cannot be fetched or decoded.
        """
        params = {"type": job_type} if job_type else None
        try:
            response = await self._request("GET", "jobs", params=params)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise JobPollingFailed(f"Failed to fetch jobs: {format_error(e)}") from e

        if isinstance(body, list):
            records = body
        elif isinstance(body, dict):
            records = body.get("jobs") or []
        else:
            raise JobPollingFailed(f"Unexpected jobs payload: {type(body).__name__}")

        jobs: list[Job] = []
        for record in records:
            try:
                dedup_field = self.dedup_fields.get(str(record.get("type", "")))
                jobs.append(Job.from_payload(record, dedup_field=dedup_field))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring malformed job record: {e}")
        return jobs

    @staticmethod
    def _skip_notice(body: dict[str, Any]) -> JobSkipped:
        message = str(body.get("message") or body.get("reason") or "Job skipped by server")
        count = _as_count(body.get("existingCount", body.get("count")))
        if count is None:
            match = _EXISTING_COUNT.search(message)
            if match:
                count = int(match.group(1))
        return JobSkipped(message=message, existing_count=count)


def _as_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
