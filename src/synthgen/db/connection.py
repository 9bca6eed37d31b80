"""SQLite connection layer shared by the document store and the job store."""

from __future__ import annotations

import sqlite3
from pathlib import Path


class Database:
    """Per-project SQLite database file."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open a connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)

    def connect(self) -> sqlite3.Connection:
        """Open a connection with row access by column name and return it."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Busy timeout lets concurrent job threads wait on the write lock.
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

