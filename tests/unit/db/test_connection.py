"""Tests for the SQLite connection layer."""

from __future__ import annotations

import threading
from contextlib import closing

from synthgen.db.connection import Database


def test_connect_creates_file_and_parents(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "synthgen.db"
    with closing(Database(db_path).connect()):
        pass
    assert db_path.exists()


def test_accepts_str_path(tmp_path):
    db = Database(str(tmp_path / "synthgen.db"))
    assert db.db_path == tmp_path / "synthgen.db"


def test_foreign_keys_enabled(tmp_path):
    with closing(Database(tmp_path / "synthgen.db").connect()) as conn:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_wal_journal_mode(tmp_path):
    with closing(Database(tmp_path / "synthgen.db").connect()) as conn:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"


def test_row_factory_set(tmp_path):
    with closing(Database(tmp_path / "synthgen.db").connect()) as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.execute("INSERT INTO t VALUES (42)")
        row = conn.execute("SELECT x FROM t").fetchone()
    assert row["x"] == 42


def test_connections_are_independent_per_thread(tmp_path):
    db = Database(tmp_path / "synthgen.db")
    with closing(db.connect()) as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.commit()

    errors: list[Exception] = []

    def writer(value: int) -> None:
        try:
            with closing(db.connect()) as c:
                c.execute("INSERT INTO t VALUES (?)", (value,))
                c.commit()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with closing(db.connect()) as conn:
        assert conn.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 5
