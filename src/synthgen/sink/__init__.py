"""Persistence sinks for generated items."""

from synthgen.sink.docstore import SqliteDocumentStore
from synthgen.sink.files import FileSink
from synthgen.sink.writer import PersistResult, SinkWriter

__all__ = ["SqliteDocumentStore", "FileSink", "PersistResult", "SinkWriter"]
