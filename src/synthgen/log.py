"""Logging setup. Modules log through ``logging.getLogger(__name__)``."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_ROOT_LOGGER = "synthgen"


def setup_logging(level: str = "INFO") -> None:
    """Route synthgen logs through a rich console handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
    """
    level = level.upper()
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",  # RichHandler renders time + level itself
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=False, show_path=False)],
        force=True,
    )
    logging.getLogger(_ROOT_LOGGER).setLevel(level)

    # litellm logs every request at INFO
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
