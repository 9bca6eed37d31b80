"""Shared pytest fixtures."""

from __future__ import annotations

import itertools
import json
import re
from typing import Any

import pytest

from synthgen.db.connection import Database
from synthgen.db.migrations import initialize
from synthgen.errors import ProviderError

_FIRST_INT_RE = re.compile(r"\d+")


class FakeProvider:
    """Scripted stand-in for LiteLLMProvider.

    Each call pops the next scripted reply (a string, or an exception to
    raise). With no script left, structured calls answer with as many unique
    ``{"name": ...}`` items as the first number in the user prompt.
    """

    def __init__(
        self,
        structured: list[Any] | None = None,
        chat: list[Any] | None = None,
    ) -> None:
        self.structured = list(structured or [])
        self.chat = list(chat or [])
        self.structured_calls: list[dict[str, Any]] = []
        self.chat_calls: list[dict[str, Any]] = []
        self._seq = itertools.count(1)

    def complete_structured(self, system_prompt, user_prompt, schema, model) -> str:
        self.structured_calls.append(
            {"system": system_prompt, "user": user_prompt, "schema": schema, "model": model}
        )
        if self.structured:
            return self._reply(self.structured.pop(0))
        return self._auto_items(user_prompt)

    def complete_chat(self, system_prompt, user_prompt, model, temperature) -> str:
        self.chat_calls.append(
            {"system": system_prompt, "user": user_prompt, "model": model, "temperature": temperature}
        )
        if self.chat:
            return self._reply(self.chat.pop(0))
        raise ProviderError("no chat reply scripted")

    @property
    def requested_sizes(self) -> list[int]:
        return [int(_FIRST_INT_RE.search(c["user"]).group()) for c in self.structured_calls]

    def _reply(self, reply: Any) -> str:
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def _auto_items(self, user_prompt: str) -> str:
        match = _FIRST_INT_RE.search(user_prompt)
        n = int(match.group()) if match else 1
        return json.dumps([{"name": f"Item {next(self._seq)}"} for _ in range(n)])


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "synthgen.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for scripted providers: make_provider(structured=[...], chat=[...])."""
    return FakeProvider


@pytest.fixture
def job_payload() -> dict[str, Any]:
    """Minimal valid raw job mapping."""
    return {
        "job_name": "test-job",
        "count": 10,
        "batch_size": 5,
        "system_prompt": "You write wellness content.",
        "user_prompt": "Generate {count} items.",
        "json_schema": {
            "name": "Items",
            "schema": {"type": "array", "items": {"type": "object"}},
        },
        "collection": "items",
    }
