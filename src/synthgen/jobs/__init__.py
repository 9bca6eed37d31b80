"""Generation jobs: records, stores and the orchestrator."""

from synthgen.jobs.orchestrator import Orchestrator
from synthgen.jobs.record import JobRecord, JobStatus
from synthgen.jobs.store import InMemoryJobStore, JobStore, SqliteJobStore

__all__ = [
    "Orchestrator",
    "JobRecord",
    "JobStatus",
    "JobStore",
    "InMemoryJobStore",
    "SqliteJobStore",
]
