"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

import pytest

from synthgen.db.connection import Database
from synthgen.db.migrations import MIGRATIONS, initialize, run_migrations


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return Database(tmp_path / "test.db").connect()


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone() is not None


# --- Bootstrap ---

def test_run_migrations_creates_schema_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, "schema_version")
    conn.close()


def test_run_migrations_records_latest_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


# --- Idempotency ---

def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    initialize(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


def test_migrations_are_ascending():
    versions = [v for v, _ in MIGRATIONS]
    assert versions == sorted(versions)
    assert len(versions) == len(set(versions))


# --- Tables created ---

@pytest.mark.parametrize("table", ["documents", "jobs"])
def test_tables_created(tmp_path, table):
    conn = _fresh_conn(tmp_path)
    initialize(conn)
    assert _table_exists(conn, table)
    conn.close()


def test_documents_keyed_by_namespace_and_id(tmp_path):
    conn = _fresh_conn(tmp_path)
    initialize(conn)
    conn.execute("INSERT INTO documents (namespace, id, data) VALUES ('a', 'x', '{}')")
    conn.execute("INSERT INTO documents (namespace, id, data) VALUES ('b', 'x', '{}')")

    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO documents (namespace, id, data) VALUES ('a', 'x', '{}')")
    conn.close()


def test_documents_timestamps_default(tmp_path):
    conn = _fresh_conn(tmp_path)
    initialize(conn)
    conn.execute("INSERT INTO documents (namespace, id, data) VALUES ('a', 'x', '{}')")
    row = conn.execute("SELECT created_at, updated_at FROM documents").fetchone()
    assert row["created_at"].endswith("Z")
    assert row["updated_at"]
    conn.close()


def test_skips_already_applied_versions(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    conn.execute("DROP TABLE jobs")
    conn.commit()

    run_migrations(conn)

    assert not _table_exists(conn, "jobs")
    conn.close()
