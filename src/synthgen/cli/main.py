"""synthgen CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from synthgen.cli.jobs import jobs_app
from synthgen.cli.run import run_cmd
from synthgen.cli.templates import templates_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("synthgen")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"synthgen {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="synthgen",
    help=(
        "synthgen: batch LLM content generation.\n\n"
        "  synthgen run        Generate items in batches and persist them to a sink.\n"
        "  synthgen jobs       Inspect recorded jobs.\n"
        "  synthgen templates  List built-in job templates."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """synthgen: batch LLM content generation."""


app.command("run")(run_cmd)
app.command("templates")(templates_cmd)
app.add_typer(jobs_app, name="jobs")


@app.command("version")
def version_cmd() -> None:
    """Show the installed synthgen version."""
    typer.echo(f"synthgen {_version()}")


if __name__ == "__main__":
    app()
