"""Submit/poll boundary in front of the orchestrator.

An HTTP layer maps these calls onto its routes: ``submit`` → 202 + job id,
``poll`` → 200 + record, ``JobNotFound`` → 404, ``ConfigError`` → 400,
``RateLimitExceeded`` → 429 with ``RateLimitResult.headers()``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from synthgen.config import SynthgenConfig
from synthgen.errors import ConfigError
from synthgen.generate.generator import Generator, Provider
from synthgen.jobs.orchestrator import Orchestrator, ProgressCallback
from synthgen.jobs.store import InMemoryJobStore, JobStore, SqliteJobStore
from synthgen.llm.client import LiteLLMProvider
from synthgen.ratelimit import RateLimiter, RateLimitResult, build_rate_limiters, client_key
from synthgen.sink.docstore import SqliteDocumentStore
from synthgen.sink.files import FileSink
from synthgen.sink.writer import SinkWriter

logger = logging.getLogger(__name__)

GENERATE_FAMILY = "generate"


class GenerationService:
    """Rate-limited job submission and polling."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        limiters: Mapping[str, RateLimiter],
        *,
        background: bool = True,
    ) -> None:
        """
        Args:
            orchestrator: Runs the jobs.
            limiters: Endpoint family → limiter; must include ``generate``.
            background: Run submitted jobs on a thread (True) or inline (False).
        """
        if GENERATE_FAMILY not in limiters:
            raise ConfigError(f"A '{GENERATE_FAMILY}' rate limiter is required")
        self.orchestrator = orchestrator
        self._limiters = dict(limiters)
        self._background = background

    def submit(self, payload: Mapping[str, Any], headers: Mapping[str, str] | None = None) -> str:
        """Admit, validate and start a job. Returns its id.

        Raises:
            RateLimitExceeded: The caller's generate bucket is exhausted.
            ConfigError: *payload* is not a valid GenerationConfig.
        """
        self._limiters[GENERATE_FAMILY].enforce(client_key(headers))
        job_id = self.orchestrator.submit(payload)
        if self._background:
            self.orchestrator.start(job_id)
        else:
            self.orchestrator.run(job_id)
        return job_id

    def poll(self, job_id: str) -> dict[str, Any]:
        """Return the serialised job record.

        Raises:
            JobNotFound: Unknown job id.
        """
        return self.orchestrator.poll(job_id).to_dict()

    def cancel(self, job_id: str) -> bool:
        return self.orchestrator.cancel(job_id)

    def guard(self, family: str, headers: Mapping[str, str] | None = None) -> RateLimitResult:
        """Admission check for another endpoint family (analytics, users, ...).

        The caller decides how to answer a denied result.
        """
        try:
            limiter = self._limiters[family]
        except KeyError:
            raise ConfigError(f"No rate limiter configured for '{family}'") from None
        return limiter.check(client_key(headers))

    def start_sweepers(self, interval_seconds: float) -> None:
        for limiter in self._limiters.values():
            limiter.start_sweeper(interval_seconds)

    def stop(self) -> None:
        for limiter in self._limiters.values():
            limiter.stop()


def build_job_store(cfg: SynthgenConfig) -> JobStore:
    if cfg.jobs.store == "memory":
        return InMemoryJobStore()
    return SqliteJobStore(Path(cfg.jobs.db_path))


def build_orchestrator(
    cfg: SynthgenConfig,
    *,
    provider: Provider | None = None,
    store: JobStore | None = None,
    on_progress: ProgressCallback | None = None,
) -> Orchestrator:
    """Wire provider, generator, sinks and job store from *cfg*."""
    gen = cfg.generation
    generator = Generator(
        provider or LiteLLMProvider(max_tokens=gen.max_tokens, num_retries=gen.num_retries),
        model_map=gen.model_map,
        fallback_model=gen.fallback_model,
        fallback_temperature=gen.fallback_temperature,
    )
    writer = SinkWriter(
        documents=SqliteDocumentStore(Path(cfg.sink.db_path)),
        files=FileSink(Path(cfg.sink.out_dir)),
        chunk_size=cfg.sink.chunk_size,
    )
    return Orchestrator(
        generator,
        writer,
        store if store is not None else build_job_store(cfg),
        default_model=gen.default_model,
        max_batch_size=gen.max_batch_size,
        on_progress=on_progress,
    )


def build_service(
    cfg: SynthgenConfig,
    *,
    provider: Provider | None = None,
    background: bool = True,
) -> GenerationService:
    """Build a ready-to-use service from configuration."""
    service = GenerationService(
        build_orchestrator(cfg, provider=provider),
        build_rate_limiters(cfg.rate_limits),
        background=background,
    )
    if background:
        # long-lived process: keep limiter maps bounded
        service.start_sweepers(cfg.rate_limits.sweep_interval_seconds)
    logger.debug("Generation service ready (background=%s)", background)
    return service
