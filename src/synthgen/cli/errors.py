"""synthgen rich error messages: actionable feedback.

Every error shown to the user names what went wrong and the exact action
that fixes it.

Usage:
    from synthgen.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pathlib import Path


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_job_file_missing(path: Path) -> str:
    return (
        f"[red]Error:[/] Job file not found: '{path}'\n"
        "  Pass a YAML or JSON job file, or start from a template:\n"
        "    synthgen run --template fitness"
    )


def err_job_file_invalid(path: Path, detail: str) -> str:
    return (
        f"[red]Error:[/] Job file '{path}' could not be read: {detail}\n"
        "  The file must contain a single mapping, e.g.:\n"
        "    system_prompt: ...\n"
        "    user_prompt: Generate {count} items\n"
        "    json_schema: {schema: {type: array}}"
    )


def err_no_job() -> str:
    return (
        "[red]Error:[/] Nothing to run.\n"
        "  Pass a job file or a template:\n"
        "    synthgen run job.yaml\n"
        "    synthgen run --template conditions\n"
        "  Run:  synthgen templates  to list templates."
    )


def err_invalid_config(detail: str) -> str:
    return (
        f"[red]Error:[/] Invalid job configuration: {detail}\n"
        "  Fix the job file or the command-line flags and retry."
    )


def err_job_not_found(job_id: str) -> str:
    return (
        f"[red]Error:[/] Job '{job_id}' not found.\n"
        "  Run:  synthgen jobs list  to see recorded jobs."
    )


def err_job_failed(error: str) -> str:
    return (
        f"[red]Error:[/] Job failed: {error}\n"
        "  Documents are keyed by id, so rerunning the job merges instead of duplicating."
    )

