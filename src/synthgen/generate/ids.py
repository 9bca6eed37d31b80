"""Stable document ids for generated items.

Precedence: ``id`` → ``name`` → ``condition_name`` → ``exercise_name`` →
positional ``item-<n>``. The first non-empty field wins. Ids are lower-cased
and every whitespace run becomes a single hyphen.

Two items that normalise to the same id collide. They are merged into one
document (later fields overlay earlier ones), both here and at the sink.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Mapping

from synthgen.config import deep_merge
from synthgen.models import GeneratedItem

_WHITESPACE_RE = re.compile(r"\s+")

IdExtractor = Callable[[Any], Any]


def _field(name: str) -> IdExtractor:
    def extract(item: Any) -> Any:
        if isinstance(item, Mapping):
            return item.get(name)
        return None

    extract.__name__ = f"field_{name}"
    return extract


# Tried in order; the first extractor returning a non-empty value wins.
ID_EXTRACTORS: list[tuple[str, IdExtractor]] = [
    ("id", _field("id")),
    ("name", _field("name")),
    ("condition_name", _field("condition_name")),
    ("exercise_name", _field("exercise_name")),
]


def normalize_id(raw: Any) -> str:
    """Lower-case *raw* and collapse whitespace runs to single hyphens."""
    return _WHITESPACE_RE.sub("-", str(raw)).lower()


def _is_empty(value: Any) -> bool:
    if value is None or isinstance(value, (bool, dict, list)):
        return True
    return isinstance(value, str) and not value.strip()


def assign_id(item: Any, index: int) -> str:
    """Derive the document id for *item* at zero-based position *index*.

    Deterministic: the same payload and index always give the same id.
    """
    for _, extract in ID_EXTRACTORS:
        value = extract(item)
        if not _is_empty(value):
            return normalize_id(value)
    return f"item-{index + 1}"


def dedupe_items(items: Iterable[GeneratedItem]) -> list[GeneratedItem]:
    """Collapse items sharing an id into one, keeping first-seen order.

    Mapping payloads are deep-merged (later wins); other payloads are replaced.
    """
    merged: dict[str, GeneratedItem] = {}
    for item in items:
        existing = merged.get(item.id)
        if existing is None:
            merged[item.id] = GeneratedItem(id=item.id, data=item.data)
        elif isinstance(existing.data, dict) and isinstance(item.data, dict):
            existing.data = deep_merge(existing.data, item.data)
        else:
            existing.data = item.data
    return list(merged.values())
