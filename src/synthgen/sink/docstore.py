"""SQLite-backed document store with chunked upsert-with-merge writes.

Documents live in ``documents(namespace, id, data, created_at, updated_at)``.
An upsert merges the new payload over the stored one (nested mappings merge,
everything else is replaced), refreshes ``updated_at`` and leaves
``created_at`` untouched on existing rows.

``persist_chunked()`` commits one transaction per chunk. When a chunk fails
it is rolled back and the remaining chunks are skipped; chunks committed
before it stay. Writes are at-least-once, not atomic across the whole set.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Iterator, Sequence

from synthgen.config import deep_merge
from synthgen.db.connection import Database
from synthgen.db.migrations import initialize
from synthgen.models import GeneratedItem

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 400  # per-transaction write ceiling of the hosted store

_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def chunked(items: Sequence[GeneratedItem], size: int) -> Iterator[Sequence[GeneratedItem]]:
    """Yield consecutive slices of *items* with at most *size* elements."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def merge_payload(existing: Any, incoming: Any) -> Any:
    """Overlay *incoming* on *existing*; only mapping payloads merge."""
    if isinstance(existing, dict) and isinstance(incoming, dict):
        return deep_merge(existing, incoming)
    return incoming


class SqliteDocumentStore:
    """Document store collaborator used by the Sink Writer.

    Each call opens its own connection so the store can be shared by jobs
    running on different threads.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db = Database(db_path)
        with closing(self._db.connect()) as conn:
            initialize(conn)

    @property
    def db_path(self) -> Path:
        return self._db.db_path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def persist_chunked(
        self,
        namespace: str,
        items: Sequence[GeneratedItem],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """Upsert *items* into *namespace*, one transaction per chunk.

        Returns:
            Number of committed chunks.

        Raises:
            sqlite3.Error: A chunk failed; earlier chunks remain committed.
        """
        commits = 0
        with closing(self._db.connect()) as conn:
            for chunk in chunked(items, chunk_size):
                self.commit_batch(conn, namespace, chunk)
                commits += 1
                logger.info("Wrote %d docs to %s", len(chunk), namespace)
        return commits

    def commit_batch(
        self,
        conn: sqlite3.Connection,
        namespace: str,
        chunk: Sequence[GeneratedItem],
    ) -> None:
        """Upsert every item of *chunk* in a single atomic transaction."""
        try:
            for item in chunk:
                self._upsert(conn, namespace, item)
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _upsert(self, conn: sqlite3.Connection, namespace: str, item: GeneratedItem) -> None:
        row = conn.execute(
            "SELECT data FROM documents WHERE namespace = ? AND id = ?",
            (namespace, item.id),
        ).fetchone()
        data = item.data if row is None else merge_payload(json.loads(row["data"]), item.data)
        conn.execute(
            f"""
            INSERT INTO documents (namespace, id, data)
            VALUES (?, ?, ?)
            ON CONFLICT(namespace, id) DO UPDATE SET
                data = excluded.data,
                updated_at = {_NOW_SQL}
            """,
            (namespace, item.id, json.dumps(data)),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, namespace: str, doc_id: str) -> dict[str, Any] | None:
        """Return ``{id, data, created_at, updated_at}`` or None if missing."""
        with closing(self._db.connect()) as conn:
            row = conn.execute(
                "SELECT id, data, created_at, updated_at FROM documents WHERE namespace = ? AND id = ?",
                (namespace, doc_id),
            ).fetchone()
        return _row_to_doc(row) if row else None

    def list_documents(self, namespace: str) -> list[dict[str, Any]]:
        """Return all documents of *namespace* ordered by id."""
        with closing(self._db.connect()) as conn:
            rows = conn.execute(
                "SELECT id, data, created_at, updated_at FROM documents WHERE namespace = ? ORDER BY id",
                (namespace,),
            ).fetchall()
        return [_row_to_doc(r) for r in rows]

    def count(self, namespace: str) -> int:
        with closing(self._db.connect()) as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM documents WHERE namespace = ?", (namespace,)
            ).fetchone()[0]


def _row_to_doc(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "data": json.loads(row["data"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }
