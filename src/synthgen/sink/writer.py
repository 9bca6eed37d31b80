"""Sink Writer: persist a job's generated items to the configured sink.

  document-store  → chunked upserts (default 400 per transaction) with merge
  file            → one JSON artifact per collection, no chunking

Collaborator failures are re-raised as SinkError. A failed document-store
chunk leaves earlier chunks committed; callers must treat the write as
at-least-once and rely on id-keyed merge for safe reruns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from synthgen.errors import SinkError
from synthgen.models import GeneratedItem, SinkKind
from synthgen.sink.docstore import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    def persist_chunked(
        self, namespace: str, items: Sequence[GeneratedItem], chunk_size: int
    ) -> int: ...


class ArtifactSink(Protocol):
    def path_for(self, namespace: str) -> Path: ...

    def persist_file(self, path: Path, namespace: str, items: Sequence[GeneratedItem]) -> None: ...


@dataclass(frozen=True)
class PersistResult:
    sink: SinkKind
    commits: int
    documents: int
    destination: str


class SinkWriter:
    """Routes items to the document store or the file sink."""

    def __init__(
        self,
        documents: DocumentSink | None = None,
        files: ArtifactSink | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._documents = documents
        self._files = files
        self.chunk_size = chunk_size

    def persist(
        self,
        sink: SinkKind | str,
        namespace: str,
        items: Sequence[GeneratedItem],
    ) -> PersistResult:
        """Persist *items* under *namespace*.

        Raises:
            SinkError: The sink is not configured or a write failed.
        """
        kind = SinkKind.parse(sink)
        if kind is SinkKind.FILE:
            return self._persist_file(namespace, items)
        return self._persist_documents(namespace, items)

    def _persist_documents(self, namespace: str, items: Sequence[GeneratedItem]) -> PersistResult:
        if self._documents is None:
            raise SinkError("No document store configured")
        try:
            commits = self._documents.persist_chunked(namespace, items, self.chunk_size)
        except Exception as exc:
            raise SinkError(f"Document store write to '{namespace}' failed: {exc}") from exc
        return PersistResult(
            sink=SinkKind.DOCUMENT_STORE,
            commits=commits,
            documents=len(items),
            destination=namespace,
        )

    def _persist_file(self, namespace: str, items: Sequence[GeneratedItem]) -> PersistResult:
        if self._files is None:
            raise SinkError("No output directory configured")
        try:
            path = self._files.path_for(namespace)
            self._files.persist_file(path, namespace, items)
        except Exception as exc:
            raise SinkError(f"File write for '{namespace}' failed: {exc}") from exc
        return PersistResult(
            sink=SinkKind.FILE,
            commits=1,
            documents=len(items),
            destination=str(path),
        )
