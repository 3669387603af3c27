"""Tests for JobStore and the job record types."""

from datetime import datetime, timedelta, timezone

import pytest

from schedkit.jobs import Job, JobStatus, JobStore, get_job_store

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_job(job_id: str, status: JobStatus = JobStatus.QUEUED, **kwargs) -> Job:
    kwargs.setdefault("type", "keyword-generation")
    kwargs.setdefault("dedup_key", "dental")
    kwargs.setdefault("submitted_at", T0)
    return Job(id=job_id, status=status, **kwargs)


@pytest.fixture
def store():
    return JobStore()


def test_add_get_remove(store):
    """Basic registry operations."""
    store.add(make_job("job-1"))
    assert len(store) == 1
    assert store.get("job-1").id == "job-1"
    assert store.get("missing") is None

    assert store.remove("job-1") is True
    assert store.remove("job-1") is False
    assert len(store) == 0


def test_reads_return_copies(store):
    """Mutating a returned job does not change the store."""
    store.add(make_job("job-1"))

    job = store.get("job-1")
    job.status = JobStatus.FAILED
    job.metadata["x"] = 1

    stored = store.get("job-1")
    assert stored.status is JobStatus.QUEUED
    assert stored.metadata == {}


def test_swap_replaces_temp_job(store):
    """The optimistic record is replaced by the confirmed one."""
    temp = Job.optimistic("keyword-generation", "dental", {"industry": "dental"})
    store.add(temp)

    store.swap(temp.id, make_job("job-1"))

    assert store.get(temp.id) is None
    assert [job.id for job in store.all()] == ["job-1"]


def test_by_type(store):
    store.add(make_job("job-1"))
    store.add(make_job("job-2", type="basic-enrichment", dedup_key="example.com"))

    assert [job.id for job in store.by_type("basic-enrichment")] == ["job-2"]
    assert store.by_type("unknown") == []


def test_by_dedup_key_prefers_non_terminal(store):
    """An in-progress job wins over newer finished ones."""
    store.add(make_job("old-running", JobStatus.PROCESSING, submitted_at=T0))
    store.add(make_job("new-done", JobStatus.COMPLETED, submitted_at=T0 + timedelta(hours=1)))

    assert store.by_dedup_key("keyword-generation", "dental").id == "old-running"


def test_by_dedup_key_latest_among_terminal(store):
    """Among finished jobs the most recent submission is returned."""
    store.add(make_job("first", JobStatus.FAILED, submitted_at=T0))
    store.add(make_job("second", JobStatus.COMPLETED, submitted_at=T0 + timedelta(minutes=5)))

    assert store.by_dedup_key("keyword-generation", "dental").id == "second"
    assert store.by_dedup_key("keyword-generation", "retail") is None
    assert store.by_dedup_key("basic-enrichment", "dental") is None


def test_has_pending(store):
    """Pending work is detected per job type."""
    assert store.has_pending() is False

    store.add(make_job("job-1", JobStatus.ACTIVE))
    store.add(make_job("job-2", JobStatus.COMPLETED, type="basic-enrichment"))

    assert store.has_pending() is True
    assert store.has_pending(["keyword-generation"]) is True
    assert store.has_pending(["basic-enrichment"]) is False


def test_merge_moves_forward(store):
    """Forward transitions are applied."""
    store.add(make_job("job-1"))

    assert store.merge(make_job("job-1", JobStatus.PROCESSING, progress=40)) is True
    assert store.get("job-1").progress == 40

    assert store.merge(make_job("job-1", JobStatus.COMPLETED, progress=100)) is True
    assert store.get("job-1").status is JobStatus.COMPLETED


def test_merge_same_rank_updates_progress(store):
    """Progress updates within the same status are applied."""
    store.add(make_job("job-1", JobStatus.PROCESSING, progress=10))

    assert store.merge(make_job("job-1", JobStatus.ACTIVE, progress=60)) is True
    job = store.get("job-1")
    assert job.status is JobStatus.ACTIVE
    assert job.progress == 60


def test_merge_discards_stale_update(store):
    """A completed job is never moved back by a stale snapshot."""
    store.add(make_job("job-1", JobStatus.COMPLETED, progress=100))

    assert store.merge(make_job("job-1", JobStatus.QUEUED)) is False
    assert store.merge(make_job("job-1", JobStatus.PROCESSING, progress=50)) is False
    assert store.get("job-1").status is JobStatus.COMPLETED


def test_merge_terminal_is_final(store):
    """One terminal status does not replace another."""
    store.add(make_job("job-1", JobStatus.COMPLETED))

    assert store.merge(make_job("job-1", JobStatus.FAILED, error="late")) is False
    assert store.get("job-1").status is JobStatus.COMPLETED


def test_merge_inserts_unknown_job(store):
    """Jobs the store has never seen are inserted."""
    assert store.merge(make_job("job-9", JobStatus.PROCESSING)) is True
    assert store.get("job-9").status is JobStatus.PROCESSING


def test_merge_keeps_dedup_key(store):
    """A record without a dedup key keeps the one assigned at submission."""
    store.add(make_job("job-1", dedup_key="dental"))

    store.merge(make_job("job-1", JobStatus.PROCESSING, dedup_key=None))

    assert store.get("job-1").dedup_key == "dental"


def test_replace_all_and_clear(store):
    store.add(make_job("job-1"))
    store.replace_all([make_job("job-2"), make_job("job-3")])

    assert sorted(job.id for job in store.all()) == ["job-2", "job-3"]

    store.clear()
    assert len(store) == 0


def test_get_job_store_is_shared():
    """The process-wide store is a singleton."""
    assert get_job_store() is get_job_store()


def test_status_normalize():
    """Wire statuses and their aliases map to JobStatus."""
    assert JobStatus.normalize("Completed") is JobStatus.COMPLETED
    assert JobStatus.normalize("pending") is JobStatus.QUEUED
    assert JobStatus.normalize("running") is JobStatus.PROCESSING
    assert JobStatus.normalize(JobStatus.ACTIVE) is JobStatus.ACTIVE
    with pytest.raises(ValueError):
        JobStatus.normalize("exploded")


def test_status_rank_and_terminal():
    assert JobStatus.QUEUED.rank < JobStatus.PROCESSING.rank == JobStatus.ACTIVE.rank
    assert JobStatus.ACTIVE.rank < JobStatus.COMPLETED.rank == JobStatus.FAILED.rank
    assert JobStatus.FAILED.is_terminal
    assert not JobStatus.ACTIVE.is_terminal


def test_optimistic_job():
    """Optimistic jobs are local, queued and carry the payload."""
    job = Job.optimistic("keyword-generation", "dental", {"industry": "dental"})

    assert job.is_local
    assert job.status is JobStatus.QUEUED
    assert job.progress == 0
    assert job.metadata == {"industry": "dental"}
    assert job.submitted_at.tzinfo is not None


def test_from_payload():
    """Service records are normalized."""
    job = Job.from_payload(
        {
            "jobId": "job-7",
            "type": "keyword-generation",
            "status": "processing",
            "progress": 140,
            "submittedAt": "2024-01-01T12:00:00Z",
            "metadata": {"industry": "dental"},
            "position": 3,
        },
        dedup_field="industry",
    )

    assert job.id == "job-7"
    assert job.status is JobStatus.PROCESSING
    assert job.progress == 100
    assert job.dedup_key == "dental"
    assert job.submitted_at == T0
    assert job.metadata["position"] == 3
    assert not job.is_local


def test_from_payload_completed_forces_full_progress():
    job = Job.from_payload({"id": "job-1", "type": "t", "status": "completed", "progress": 20})
    assert job.progress == 100


def test_from_payload_prefers_explicit_dedup_key():
    job = Job.from_payload(
        {"id": "job-1", "type": "t", "dedupKey": "server", "metadata": {"industry": "meta"}},
        dedup_key="forced",
        dedup_field="industry",
    )
    assert job.dedup_key == "forced"


def test_from_payload_requires_id():
    with pytest.raises(ValueError):
        Job.from_payload({"type": "keyword-generation", "status": "queued"})


def test_swap_does_not_regress_polled_job(store):
    """A job already merged as completed is not moved back by the accepted record."""
    temp = Job.optimistic("keyword-generation", "dental", {})
    store.add(temp)
    store.merge(make_job("job-1", JobStatus.COMPLETED, progress=100, dedup_key=None))

    assert store.swap(temp.id, make_job("job-1", JobStatus.QUEUED)) is False

    job = store.get("job-1")
    assert job.status is JobStatus.COMPLETED
    assert job.progress == 100
    assert job.dedup_key == "dental"
    assert store.get(temp.id) is None


def test_swap_applies_forward_record(store):
    temp = Job.optimistic("keyword-generation", "dental", {})
    store.add(temp)
    store.merge(make_job("job-1", JobStatus.QUEUED, dedup_key=None))

    assert store.swap(temp.id, make_job("job-1", JobStatus.PROCESSING, progress=10)) is True

    assert store.get("job-1").status is JobStatus.PROCESSING
    assert len(store) == 1
