"""Job record: the polling view of one generation job.

State machine::

    queued ──► running ──► completed
      │           │
      └───────────┴──────► failed

``running → running`` is a progress update. Terminal states are set once.
Records are immutable; every transition returns a new record with a fresh
``updated_at`` (never earlier than the previous one).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from synthgen.errors import JobStateError


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset([JobStatus.RUNNING, JobStatus.FAILED]),
    JobStatus.RUNNING: frozenset([JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED]),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class JobRecord:
    id: str
    total: int
    status: JobStatus = JobStatus.QUEUED
    completed: int = 0
    message: str | None = None
    error: str | None = None
    created_at: float = 0.0
    updated_at: float = 0.0

    @classmethod
    def new(cls, job_id: str, total: int, *, now: float | None = None) -> JobRecord:
        now = time.time() if now is None else now
        return cls(id=job_id, total=total, created_at=now, updated_at=now, message="Queued")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> JobRecord:
        return self._move(JobStatus.RUNNING, message="Starting")

    def progress(self, completed: int, message: str) -> JobRecord:
        """Record items produced so far. Clamped to ``total``, never decreasing."""
        return self._move(
            JobStatus.RUNNING,
            completed=self._clamp(completed),
            message=message,
        )

    def complete(self, completed: int, message: str) -> JobRecord:
        return self._move(
            JobStatus.COMPLETED,
            completed=self._clamp(completed),
            message=message,
        )

    def fail(self, error: str) -> JobRecord:
        return self._move(JobStatus.FAILED, error=error or "Unknown error", message="Failed")

    def _move(self, status: JobStatus, **changes: Any) -> JobRecord:
        if status not in _TRANSITIONS[self.status]:
            raise JobStateError(
                f"Job {self.id}: cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, updated_at=max(time.time(), self.updated_at), **changes)

    def _clamp(self, completed: int) -> int:
        return max(self.completed, min(completed, self.total))

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Wire form returned to pollers."""
        data: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "completed": self.completed,
            "total": self.total,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.message is not None:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error
        return data
