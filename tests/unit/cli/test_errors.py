"""Tests for synthgen rich error messages."""

from __future__ import annotations

from pathlib import Path

import pytest

from synthgen.cli.errors import (
    err_invalid_config,
    err_job_failed,
    err_job_file_invalid,
    err_job_file_missing,
    err_job_not_found,
    err_no_api_key,
    err_no_job,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _has_action(msg: str) -> bool:
    """Every error must contain an actionable instruction."""
    lower = msg.lower()
    return any(kw in lower for kw in ["run:", "set:", "export ", "synthgen ", "fix ", "rerun"])


# ---------------------------------------------------------------------------
# err_no_api_key
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "provider,expected_env",
    [
        ("openai", "OPENAI_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
        ("gemini", "GEMINI_API_KEY"),
        ("myprovider", "MYPROVIDER_API_KEY"),
    ],
)
def test_err_no_api_key_env_var(provider: str, expected_env: str) -> None:
    msg = err_no_api_key(provider)
    assert expected_env in msg
    assert provider in msg


# ---------------------------------------------------------------------------
# All messages
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "msg",
    [
        err_no_api_key("openai"),
        err_job_file_missing(Path("job.yaml")),
        err_job_file_invalid(Path("job.yaml"), "expected a mapping"),
        err_no_job(),
        err_invalid_config("count must be greater than 0"),
        err_job_not_found("abc123"),
        err_job_failed("still down"),
    ],
)
def test_every_error_is_actionable(msg: str) -> None:
    assert msg.startswith("[red]Error:[/]")
    assert _has_action(msg)


def test_messages_carry_details() -> None:
    assert "job.yaml" in err_job_file_missing(Path("job.yaml"))
    assert "count must be" in err_invalid_config("count must be greater than 0")
    assert "abc123" in err_job_not_found("abc123")
    assert "still down" in err_job_failed("still down")
