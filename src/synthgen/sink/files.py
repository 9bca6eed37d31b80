"""File sink: one JSON artifact per collection.

Responsibilities:
  1. Map a collection name to ``<out_dir>/<collection>.json``.
  2. Confine that path to the output directory; traversal is a hard fail.
  3. Serialise ``{"collection": ..., "docs": [{"id", "data"}, ...]}``.
  4. Write atomically (temp file → rename) so readers never see half a file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence

from synthgen.models import GeneratedItem

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Path validation (path traversal prevention)
# ------------------------------------------------------------------


def artifact_path(out_dir: Path | str, namespace: str) -> Path:
    """Return the resolved artifact path for *namespace* inside *out_dir*.

    Raises:
        ValueError: If the namespace resolves outside *out_dir*.
    """
    base = Path(out_dir).resolve()
    resolved = (base / f"{namespace}.json").resolve()

    try:
        resolved.relative_to(base)
    except ValueError:
        raise ValueError(
            f"Collection '{namespace}' resolves outside the output directory "
            f"('{base}'). Path traversal is not permitted."
        )

    return resolved


# ------------------------------------------------------------------
# Atomic write
# ------------------------------------------------------------------


def write_output(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on error
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class FileSink:
    """File sink collaborator used by the Sink Writer."""

    def __init__(self, out_dir: Path | str) -> None:
        self.out_dir = Path(out_dir)

    def path_for(self, namespace: str) -> Path:
        return artifact_path(self.out_dir, namespace)

    def persist_file(self, path: Path, namespace: str, items: Sequence[GeneratedItem]) -> None:
        """Write every item of *namespace* to *path* as one JSON document."""
        payload = {"collection": namespace, "docs": [item.to_dict() for item in items]}
        write_output(path, json.dumps(payload, indent=2, ensure_ascii=False))
        logger.info("Wrote %d docs to %s", len(items), path)
