"""Tests for the job record state machine."""

from __future__ import annotations

import pytest

from synthgen.errors import JobStateError
from synthgen.jobs.record import JobRecord, JobStatus


def _queued(total: int = 10) -> JobRecord:
    return JobRecord.new("job-1", total=total, now=100.0)


def _running(total: int = 10) -> JobRecord:
    return _queued(total).start()


# ------------------------------------------------------------------
# Creation
# ------------------------------------------------------------------


def test_new_record_is_queued():
    record = _queued()

    assert record.status is JobStatus.QUEUED
    assert record.completed == 0
    assert record.total == 10
    assert record.created_at == record.updated_at == 100.0
    assert record.message == "Queued"
    assert record.error is None


# ------------------------------------------------------------------
# Valid transitions
# ------------------------------------------------------------------


def test_start():
    record = _running()
    assert record.status is JobStatus.RUNNING
    assert record.message == "Starting"


def test_progress_updates_running_record():
    record = _running().progress(5, "Batch 1/2")

    assert record.status is JobStatus.RUNNING
    assert record.completed == 5
    assert record.message == "Batch 1/2"


def test_complete():
    record = _running().progress(5, "Batch 1/2").complete(10, "Saved 10 documents")

    assert record.status is JobStatus.COMPLETED
    assert record.status.terminal
    assert record.completed == 10


def test_fail_from_queued_and_running():
    assert _queued().fail("bad config").status is JobStatus.FAILED
    failed = _running().fail("provider down")
    assert failed.error == "provider down"
    assert failed.message == "Failed"


def test_fail_with_empty_error_still_sets_error():
    assert _running().fail("").error == "Unknown error"


# ------------------------------------------------------------------
# Invalid transitions
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "make, action",
    [
        (lambda: _queued(), lambda r: r.progress(1, "x")),
        (lambda: _queued(), lambda r: r.complete(1, "x")),
        (lambda: _running().complete(10, "done"), lambda r: r.fail("late")),
        (lambda: _running().complete(10, "done"), lambda r: r.progress(1, "x")),
        (lambda: _running().fail("boom"), lambda r: r.complete(10, "x")),
        (lambda: _running().fail("boom"), lambda r: r.start()),
    ],
)
def test_invalid_transitions_raise(make, action):
    with pytest.raises(JobStateError):
        action(make())


# ------------------------------------------------------------------
# Invariants
# ------------------------------------------------------------------


def test_completed_never_exceeds_total():
    assert _running(total=10).progress(25, "x").completed == 10
    assert _running(total=10).complete(12, "x").completed == 10


def test_completed_never_decreases():
    record = _running().progress(6, "x").progress(2, "y")
    assert record.completed == 6


def test_updated_at_monotonic():
    record = _queued()
    later = record.start()
    latest = later.progress(1, "x")

    assert record.updated_at <= later.updated_at <= latest.updated_at
    assert latest.created_at == record.created_at


def test_updated_at_never_goes_backwards_with_future_timestamp():
    record = JobRecord.new("job-1", total=3, now=4_000_000_000.0)
    assert record.start().updated_at == 4_000_000_000.0


def test_records_are_immutable():
    record = _queued()
    record.start()
    assert record.status is JobStatus.QUEUED


# ------------------------------------------------------------------
# Serialisation
# ------------------------------------------------------------------


def test_to_dict_camel_case():
    data = _running().fail("boom").to_dict()

    assert data["id"] == "job-1"
    assert data["status"] == "failed"
    assert data["error"] == "boom"
    assert data["createdAt"] == 100.0
    assert "updatedAt" in data
    assert "created_at" not in data


def test_to_dict_omits_missing_error():
    assert "error" not in _queued().to_dict()
