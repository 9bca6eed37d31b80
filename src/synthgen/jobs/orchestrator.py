"""Job Orchestrator: runs a GenerationConfig from submission to a terminal state.

Pipeline per job:
  1. submit()   → validate config, create ``queued`` record, return job id
  2. run()      → ``running``; sequential batch loop:
                    needed = min(batch_size, count - items_so_far)
                    Generator → assign ids → progress "Batch i/N"
  3. truncate to ``count``, merge items sharing an id, Sink Writer
  4. ``completed``; any error on the way → ``failed`` with the message

Batches of one job never overlap. Distinct jobs may run on separate threads
(start()); they share no mutable batch state. Cancellation is checked between
batches only since provider calls cannot be interrupted.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Mapping

from synthgen.errors import JobCancelled, JobNotFound, SynthgenError
from synthgen.generate.generator import Generator
from synthgen.generate.ids import assign_id, dedupe_items
from synthgen.jobs.record import JobRecord
from synthgen.jobs.store import JobStore
from synthgen.models import DEFAULT_MAX_BATCH_SIZE, GeneratedItem, GenerationConfig
from synthgen.sink.writer import SinkWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[JobRecord], None]


class Orchestrator:
    """Sole writer of job records."""

    def __init__(
        self,
        generator: Generator,
        sink_writer: SinkWriter,
        store: JobStore,
        *,
        default_model: str = "gpt-4o-mini",
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._generator = generator
        self._sink = sink_writer
        self._store = store
        self._default_model = default_model
        self._max_batch_size = max_batch_size
        self._on_progress = on_progress
        self._configs: dict[str, GenerationConfig] = {}
        self._cancel: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, config: GenerationConfig | Mapping[str, Any]) -> str:
        """Validate *config* and create a ``queued`` job. Returns the job id.

        Raises:
            ConfigError: Invalid config; no job is created.
        """
        if not isinstance(config, GenerationConfig):
            config = GenerationConfig.from_dict(
                config,
                default_model=self._default_model,
                max_batch_size=self._max_batch_size,
            )

        job_id = uuid.uuid4().hex
        with self._lock:
            self._configs[job_id] = config
            self._cancel[job_id] = threading.Event()
        self._store.create(JobRecord.new(job_id, total=config.count))
        logger.info(
            "Queued job %s (%s): %d items in %d batches",
            job_id, config.job_name, config.count, config.batch_count,
        )
        return job_id

    def run(self, job_id: str) -> JobRecord:
        """Execute the job synchronously and return its terminal record.

        Never raises for job-level failures; those end in a ``failed`` record.

        Raises:
            JobNotFound: *job_id* is not queued on this orchestrator.
        """
        with self._lock:
            config = self._configs.pop(job_id, None)
        if config is None:
            raise JobNotFound(job_id)

        try:
            record = self._save(self._store.get(job_id).start())
            items, record = self._run_batches(job_id, config, record)
            items = items[: config.count]
            docs = dedupe_items(items)
            if len(docs) < len(items):
                logger.info("Job %s: %d items merged into %d documents", job_id, len(items), len(docs))
            result = self._sink.persist(config.sink, config.collection, docs)
        except SynthgenError as exc:
            logger.error("Job %s failed: %s", job_id, exc)
            return self._fail(job_id, str(exc))
        except Exception as exc:
            logger.exception("Job %s failed unexpectedly", job_id)
            return self._fail(job_id, f"{type(exc).__name__}: {exc}")
        finally:
            with self._lock:
                self._cancel.pop(job_id, None)

        message = f"Saved {result.documents} documents to {result.sink.value}: {result.destination}"
        logger.info("Job %s completed. %s", job_id, message)
        return self._save(record.complete(len(items), message))

    def start(self, job_id: str) -> threading.Thread:
        """Run the job on a daemon thread. Poll for progress."""
        self._config(job_id)  # fail fast on unknown ids
        thread = threading.Thread(target=self.run, args=(job_id,), name=f"job-{job_id[:8]}", daemon=True)
        thread.start()
        return thread

    def submit_and_run(self, config: GenerationConfig | Mapping[str, Any]) -> JobRecord:
        return self.run(self.submit(config))

    def poll(self, job_id: str) -> JobRecord:
        """Return the latest record for *job_id*.

        Raises:
            JobNotFound: Unknown job id.
        """
        return self._store.get(job_id)

    def cancel(self, job_id: str) -> bool:
        """Stop a job before its next batch; a queued job fails at once.

        Returns False when the job is unknown or already finished.
        """
        with self._lock:
            event = self._cancel.get(job_id)
            queued = self._configs.pop(job_id, None) is not None
            if queued:
                self._cancel.pop(job_id, None)
        if event is None:
            return False
        if queued:
            logger.info("Cancelled queued job %s", job_id)
            self._fail(job_id, str(JobCancelled()))
            return True
        event.set()
        logger.info("Cancellation requested for job %s", job_id)
        return True

    # ------------------------------------------------------------------
    # Batch loop
    # ------------------------------------------------------------------

    def _run_batches(
        self,
        job_id: str,
        config: GenerationConfig,
        record: JobRecord,
    ) -> tuple[list[GeneratedItem], JobRecord]:
        batches = config.batch_count
        items: list[GeneratedItem] = []

        for i in range(batches):
            self._check_cancelled(job_id)

            needed = min(config.batch_size, config.count - len(items))
            if needed <= 0:
                break

            result = self._generator.generate(
                config.system_prompt,
                config.render_user_prompt(needed),
                config.json_schema,
                config.model,
            )
            for payload in result.items:
                items.append(GeneratedItem(id=assign_id(payload, len(items)), data=payload))

            logger.debug(
                "Job %s batch %d/%d: requested %d, got %d (%s)",
                job_id, i + 1, batches, needed, len(result.items), result.strategy.value,
            )
            record = self._save(
                record.progress(min(len(items), config.count), f"Batch {i + 1}/{batches}")
            )

        return items, record

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _config(self, job_id: str) -> GenerationConfig:
        with self._lock:
            config = self._configs.get(job_id)
        if config is None:
            raise JobNotFound(job_id)
        return config

    def _check_cancelled(self, job_id: str) -> None:
        with self._lock:
            event = self._cancel.get(job_id)
        if event is not None and event.is_set():
            raise JobCancelled()

    def _fail(self, job_id: str, error: str) -> JobRecord:
        # from the latest saved record so completed never goes backwards
        return self._save(self._store.get(job_id).fail(error))

    def _save(self, record: JobRecord) -> JobRecord:
        self._store.save(record)
        if self._on_progress is not None:
            self._on_progress(record)
        return record
