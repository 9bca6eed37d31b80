"""synthgen command-line interface (typer)."""
