"""synthgen templates command: list the built-in job templates."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from synthgen.generate.templates import TEMPLATES

console = Console()


def templates_cmd() -> None:
    """List built-in job templates."""
    table = Table(title="Templates", show_header=True, header_style="bold")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Collection")
    table.add_column("Batch", justify="right")
    table.add_column("Description", style="dim")

    for template in TEMPLATES.values():
        cfg = template.config
        table.add_row(
            template.id,
            template.name,
            cfg.get("collection", ""),
            str(cfg["batch_size"]) if "batch_size" in cfg else "",
            template.description,
        )

    console.print(table)
    console.print("\n  Run:  synthgen run --template <id> [--count N]")
