"""Exception hierarchy for the generation pipeline.

Catch ``SynthgenError`` to handle any pipeline failure. Boundary errors
(``ConfigError``, ``RateLimitExceeded``) are raised synchronously to callers;
job-level errors (``ProviderError``, ``ParseError``, ``SinkError``,
``JobCancelled``) end up in the job record's ``error`` field.
"""

from __future__ import annotations

import math
import time


class SynthgenError(Exception):
    """Base class for every error raised by synthgen."""


class ConfigError(SynthgenError, ValueError):
    """Invalid application config or GenerationConfig. Rejected before any job exists."""


class ProviderError(SynthgenError):
    """The LLM provider call failed (network, auth, rejected schema, ...)."""


class ParseError(SynthgenError):
    """Provider text is not valid JSON or cannot be coerced to an item list."""


class SinkError(SynthgenError):
    """Persisting generated items failed. Always fatal to the job."""


class RateLimitExceeded(SynthgenError):
    """The caller's bucket is exhausted until *reset_at* (epoch seconds)."""

    def __init__(self, reset_at: float, limit: int) -> None:
        self.reset_at = reset_at
        self.limit = limit
        super().__init__(
            f"Rate limit of {limit} requests exceeded. Retry after {self.retry_after()}s."
        )

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the window resets (never negative)."""
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))


class JobNotFound(SynthgenError, LookupError):
    """No job record exists for the requested id."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job '{job_id}' not found")


class JobStateError(SynthgenError):
    """An invalid job state transition was attempted."""


class JobCancelled(SynthgenError):
    """The job was cancelled between batches."""

    def __init__(self) -> None:
        super().__init__("Job cancelled")
