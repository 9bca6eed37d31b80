"""synthgen database layer."""

from synthgen.db.connection import Database
from synthgen.db.migrations import MIGRATIONS, initialize, run_migrations

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
