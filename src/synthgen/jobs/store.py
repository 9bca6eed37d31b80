"""Job record stores keyed by job id.

Two implementations share one interface:

  InMemoryJobStore  → dict under a lock; process-local, for tests and dev
  SqliteJobStore    → ``jobs`` table; survives restarts, readable by the CLI

Both are safe for concurrent jobs updating different ids.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import closing
from pathlib import Path
from typing import Protocol

from synthgen.db.connection import Database
from synthgen.db.migrations import initialize
from synthgen.errors import JobNotFound
from synthgen.jobs.record import JobRecord, JobStatus


class JobStore(Protocol):
    def create(self, record: JobRecord) -> None: ...

    def get(self, job_id: str) -> JobRecord: ...

    def save(self, record: JobRecord) -> None: ...

    def list_jobs(self, limit: int | None = None) -> list[JobRecord]: ...


class InMemoryJobStore:
    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: JobRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Job '{record.id}' already exists")
            self._records[record.id] = record

    def get(self, job_id: str) -> JobRecord:
        with self._lock:
            try:
                return self._records[job_id]
            except KeyError:
                raise JobNotFound(job_id) from None

    def save(self, record: JobRecord) -> None:
        with self._lock:
            if record.id not in self._records:
                raise JobNotFound(record.id)
            self._records[record.id] = record

    def list_jobs(self, limit: int | None = None) -> list[JobRecord]:
        """Newest first."""
        with self._lock:
            records = sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)
        return records[:limit] if limit is not None else records


class SqliteJobStore:
    """Durable job store. Opens one connection per operation."""

    def __init__(self, db_path: Path | str) -> None:
        self._db = Database(db_path)
        with closing(self._db.connect()) as conn:
            initialize(conn)

    def create(self, record: JobRecord) -> None:
        with closing(self._db.connect()) as conn:
            conn.execute(
                """
                INSERT INTO jobs (id, status, completed, total, message, error, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                _record_params(record),
            )
            conn.commit()

    def get(self, job_id: str) -> JobRecord:
        with closing(self._db.connect()) as conn:
            row = conn.execute(
                "SELECT id, status, completed, total, message, error, created_at, updated_at "
                "FROM jobs WHERE id = ?",
                (job_id,),
            ).fetchone()
        if row is None:
            raise JobNotFound(job_id)
        return _row_to_record(row)

    def save(self, record: JobRecord) -> None:
        with closing(self._db.connect()) as conn:
            cur = conn.execute(
                """
                UPDATE jobs SET status = ?, completed = ?, total = ?, message = ?, error = ?,
                    created_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (*_record_params(record)[1:], record.id),
            )
            conn.commit()
        if cur.rowcount == 0:
            raise JobNotFound(record.id)

    def list_jobs(self, limit: int | None = None) -> list[JobRecord]:
        """Newest first."""
        sql = (
            "SELECT id, status, completed, total, message, error, created_at, updated_at "
            "FROM jobs ORDER BY created_at DESC"
        )
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        with closing(self._db.connect()) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_record(r) for r in rows]


# ------------------------------------------------------------------
# Row ↔ record helpers
# ------------------------------------------------------------------


def _record_params(record: JobRecord) -> tuple:
    return (
        record.id,
        record.status.value,
        record.completed,
        record.total,
        record.message,
        record.error,
        record.created_at,
        record.updated_at,
    )


def _row_to_record(row: sqlite3.Row) -> JobRecord:
    return JobRecord(
        id=row["id"],
        status=JobStatus(row["status"]),
        completed=row["completed"],
        total=row["total"],
        message=row["message"],
        error=row["error"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
