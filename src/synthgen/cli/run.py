"""synthgen run CLI command.

Runs one generation job synchronously in the foreground.

Usage:
  synthgen run job.yaml [--count 25 --batch-size 10]
  synthgen run --template fitness --sink file --out-dir output/

Flags:
  --template ID      Start from a built-in template (job file values win)
  --count N          Total items to generate
  --batch-size N     Items requested per provider call (capped by config)
  --model NAME       Logical model name (resolved through generation.model_map)
  --sink KIND        document-store | file
  --collection NAME  Target collection / namespace
  --db PATH          SQLite database for documents and job records
  --out-dir PATH     Output directory of the file sink
  --dry-run          Print the batch plan without calling the provider
  --verbose          Debug logging
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from synthgen.cli.errors import (
    err_invalid_config,
    err_job_failed,
    err_job_file_invalid,
    err_job_file_missing,
    err_no_api_key,
    err_no_job,
)
from synthgen.config import SynthgenConfig, load_config
from synthgen.errors import ConfigError
from synthgen.generate.templates import apply_template, get_template
from synthgen.jobs.record import JobRecord, JobStatus
from synthgen.llm.client import provider_of, resolve_model, validate_api_key
from synthgen.log import setup_logging
from synthgen.models import GenerationConfig, SinkKind
from synthgen.service import build_orchestrator

console = Console()


def run_cmd(
    job_file: Annotated[
        Path | None,
        typer.Argument(help="YAML or JSON job file. Optional with --template."),
    ] = None,
    template: Annotated[
        str | None,
        typer.Option("--template", "-t", help="Built-in template id (see: synthgen templates)."),
    ] = None,
    count: Annotated[
        int | None,
        typer.Option("--count", "-n", help="Total number of items to generate."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", help="Items requested per provider call."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Logical model name."),
    ] = None,
    sink: Annotated[
        str | None,
        typer.Option("--sink", help="document-store or file."),
    ] = None,
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Target collection."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="SQLite database for documents and job records."),
    ] = None,
    out_dir: Annotated[
        Path | None,
        typer.Option("--out-dir", help="Output directory of the file sink."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the batch plan without calling the provider."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """Generate a batch of content items and persist them to a sink."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)

    setup_logging("DEBUG" if verbose else cfg.logging.level)

    # ---- CLI flags: highest priority layer ----
    if db is not None:
        cfg.sink.db_path = str(db)
        cfg.jobs.db_path = str(db)
    if out_dir is not None:
        cfg.sink.out_dir = str(out_dir)

    # ---- Job config ----
    raw = _load_job_file(job_file) if job_file is not None else {}
    file_template = raw.pop("template", None)
    template_id = template or file_template
    if job_file is None and template_id is None:
        console.print(err_no_job())
        raise typer.Exit(1)

    overrides: dict[str, Any] = {
        **raw,
        "count": count,
        "batch_size": batch_size,
        "model": model,
        "sink": sink,
        "collection": collection,
    }
    try:
        if template_id:
            merged = apply_template(get_template(str(template_id)), overrides)
        else:
            merged = {k: v for k, v in overrides.items() if v is not None}
        config = GenerationConfig.from_dict(
            merged,
            default_model=cfg.generation.default_model,
            max_batch_size=cfg.generation.max_batch_size,
        )
    except ConfigError as exc:
        console.print(err_invalid_config(str(exc)))
        raise typer.Exit(1)

    resolved = resolve_model(config.model, cfg.generation.model_map, cfg.generation.fallback_model)
    _print_plan(config, resolved, cfg)

    if dry_run:
        console.print("\n[dim]Dry run. No provider calls made.[/]")
        return

    # ---- API key validation ----
    try:
        validate_api_key(resolved)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(resolved)))
        raise typer.Exit(1)

    # ---- Run ----
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task(f"Generating {config.job_name}…", total=config.count)

        def _on_progress(record: JobRecord) -> None:
            prog.update(task, completed=record.completed, description=record.message or "")

        orchestrator = build_orchestrator(cfg, on_progress=_on_progress)
        record = orchestrator.submit_and_run(config)

    print_record(record)

    if record.status is JobStatus.FAILED:
        console.print(err_job_failed(record.error or "unknown error"))
        raise typer.Exit(1)

    console.print(f"\n  [green]✓[/] {escape(record.message or '')}")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_job_file(path: Path) -> dict[str, Any]:
    """Read a YAML (or JSON, a YAML subset) job file into a mapping."""
    if not path.is_file():
        console.print(err_job_file_missing(path))
        raise typer.Exit(1)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        console.print(err_job_file_invalid(path, str(exc)))
        raise typer.Exit(1)
    if data is None:
        return {}
    if not isinstance(data, dict):
        console.print(err_job_file_invalid(path, f"expected a mapping, got {type(data).__name__}"))
        raise typer.Exit(1)
    return data


def _print_plan(config: GenerationConfig, resolved_model: str, cfg: SynthgenConfig) -> None:
    table = Table(title=f"Job: {config.job_name}", show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    sizes = [
        min(config.batch_size, config.count - i * config.batch_size)
        for i in range(config.batch_count)
    ]
    table.add_row("Items", str(config.count))
    table.add_row("Batches", f"{config.batch_count} ({', '.join(map(str, sizes))})")
    table.add_row("Model", f"{config.model} → {resolved_model}")
    table.add_row("Schema", config.json_schema.name)
    table.add_row("Sink", f"{config.sink.value} → {config.collection}")
    if config.sink is SinkKind.FILE:
        table.add_row("Output dir", cfg.sink.out_dir)
    else:
        table.add_row("Database", cfg.sink.db_path)
    console.print(table)


def print_record(record: JobRecord) -> None:
    """Render one job record as a key/value table."""
    colour = {
        JobStatus.COMPLETED: "green",
        JobStatus.FAILED: "red",
        JobStatus.RUNNING: "cyan",
        JobStatus.QUEUED: "yellow",
    }[record.status]

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Job", record.id)
    table.add_row("Status", f"[{colour}]{record.status.value}[/]")
    table.add_row("Progress", f"{record.completed}/{record.total}")
    if record.message:
        table.add_row("Message", escape(record.message))
    if record.error:
        table.add_row("Error", f"[red]{escape(record.error)}[/]")
    console.print(table)
