"""synthgen jobs CLI commands.

Commands:
  synthgen jobs list            show recorded jobs, newest first
  synthgen jobs show <job-id>   show one job record
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from synthgen.cli.errors import err_job_not_found
from synthgen.cli.run import print_record
from synthgen.config import load_config
from synthgen.errors import ConfigError, JobNotFound
from synthgen.jobs.record import JobStatus
from synthgen.jobs.store import SqliteJobStore

console = Console()

jobs_app = typer.Typer(
    name="jobs",
    help="Inspect recorded generation jobs (list, show).",
    add_completion=False,
)

_STATUS_STYLE = {
    JobStatus.QUEUED: "[yellow]queued[/]",
    JobStatus.RUNNING: "[cyan]running[/]",
    JobStatus.COMPLETED: "[green]✓ completed[/]",
    JobStatus.FAILED: "[red]✗ failed[/]",
}


@jobs_app.command("list")
def jobs_list_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Job database (default: jobs.db_path from config)."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", min=1, help="Maximum number of jobs to show."),
    ] = 20,
) -> None:
    """List recorded jobs, newest first."""
    db_path = _resolve_db(db)
    if not db_path.exists():
        console.print(
            f"[yellow]No job database found at '{db_path}'.[/]\n"
            "  Run a job first:  synthgen run job.yaml"
        )
        raise typer.Exit(0)

    records = SqliteJobStore(db_path).list_jobs(limit=limit)
    if not records:
        console.print("[yellow]No jobs recorded yet.[/]")
        raise typer.Exit(0)

    table = Table(title="Jobs", show_header=True, header_style="bold")
    table.add_column("Id", style="bold")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Created", style="dim")
    table.add_column("Message")

    for record in records:
        created = datetime.fromtimestamp(record.created_at).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(
            record.id,
            _STATUS_STYLE[record.status],
            f"{record.completed}/{record.total}",
            created,
            record.error or record.message or "",
        )

    console.print(table)


@jobs_app.command("show")
def jobs_show_cmd(
    job_id: Annotated[str, typer.Argument(help="Job id as printed by synthgen run.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Job database (default: jobs.db_path from config)."),
    ] = None,
) -> None:
    """Show one job record."""
    db_path = _resolve_db(db)
    if not db_path.exists():
        console.print(err_job_not_found(job_id))
        raise typer.Exit(1)

    try:
        record = SqliteJobStore(db_path).get(job_id)
    except JobNotFound:
        console.print(err_job_not_found(job_id))
        raise typer.Exit(1)

    print_record(record)


def _resolve_db(db: Path | None) -> Path:
    if db is not None:
        return db
    try:
        return Path(load_config().jobs.db_path)
    except ConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
