"""Tests for the Sink Writer routing and error wrapping."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest

from synthgen.errors import SinkError
from synthgen.models import GeneratedItem, SinkKind
from synthgen.sink.docstore import SqliteDocumentStore
from synthgen.sink.files import FileSink
from synthgen.sink.writer import PersistResult, SinkWriter


def _items(n: int) -> list[GeneratedItem]:
    return [GeneratedItem(id=f"doc-{i:02d}", data={"n": i}) for i in range(n)]


class RecordingStore:
    """Document store double that records chunk sizes and can fail on one chunk."""

    def __init__(self, fail_on_chunk: int | None = None) -> None:
        self.fail_on_chunk = fail_on_chunk
        self.committed: list[list[str]] = []

    def persist_chunked(self, namespace, items, chunk_size):
        for number, start in enumerate(range(0, len(items), chunk_size), start=1):
            if number == self.fail_on_chunk:
                raise sqlite3.OperationalError("database is locked")
            self.committed.append([i.id for i in items[start : start + chunk_size]])
        return len(self.committed)


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        SinkWriter(chunk_size=0)


# ------------------------------------------------------------------
# Document store
# ------------------------------------------------------------------


@pytest.mark.parametrize("n, chunk_size, commits", [(25, 10, 3), (400, 400, 1), (801, 400, 3), (0, 400, 0)])
def test_document_store_commit_count(n, chunk_size, commits):
    store = RecordingStore()
    writer = SinkWriter(documents=store, chunk_size=chunk_size)

    result = writer.persist(SinkKind.DOCUMENT_STORE, "things", _items(n))

    assert result == PersistResult(
        sink=SinkKind.DOCUMENT_STORE, commits=commits, documents=n, destination="things"
    )
    assert all(len(chunk) <= chunk_size for chunk in store.committed)


def test_firestore_alias_routes_to_document_store():
    store = RecordingStore()
    result = SinkWriter(documents=store).persist("firestore", "things", _items(2))

    assert result.sink is SinkKind.DOCUMENT_STORE
    assert store.committed == [["doc-00", "doc-01"]]


def test_failure_on_second_of_three_chunks():
    store = RecordingStore(fail_on_chunk=2)
    writer = SinkWriter(documents=store, chunk_size=10)

    with pytest.raises(SinkError, match="database is locked") as exc_info:
        writer.persist(SinkKind.DOCUMENT_STORE, "things", _items(25))

    # First chunk stays committed, third never attempted
    assert store.committed == [[f"doc-{i:02d}" for i in range(10)]]
    assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)


def test_document_store_not_configured():
    with pytest.raises(SinkError, match="No document store"):
        SinkWriter(files=FileSink("out")).persist(SinkKind.DOCUMENT_STORE, "things", _items(1))


def test_sqlite_store_end_to_end(tmp_path):
    store = SqliteDocumentStore(tmp_path / "docs.db")
    writer = SinkWriter(documents=store, chunk_size=4)

    result = writer.persist("document-store", "things", _items(9))

    assert result.commits == 3
    assert store.count("things") == 9


# ------------------------------------------------------------------
# File sink
# ------------------------------------------------------------------


def test_file_sink_writes_one_artifact(tmp_path):
    writer = SinkWriter(files=FileSink(tmp_path), chunk_size=2)

    result = writer.persist(SinkKind.FILE, "things", _items(5))

    path = Path(result.destination)
    assert result.sink is SinkKind.FILE
    assert result.commits == 1
    assert result.documents == 5
    assert path.name == "things.json"
    assert len(json.loads(path.read_text(encoding="utf-8"))["docs"]) == 5


def test_file_sink_traversal_is_sink_error(tmp_path):
    writer = SinkWriter(files=FileSink(tmp_path / "out"))

    with pytest.raises(SinkError, match="Path traversal"):
        writer.persist(SinkKind.FILE, "../escape", _items(1))


def test_file_sink_not_configured():
    with pytest.raises(SinkError, match="No output directory"):
        SinkWriter(documents=RecordingStore()).persist(SinkKind.FILE, "things", _items(1))
