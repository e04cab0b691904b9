"""Logging configuration for the Soldiom CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
CLI entry point calls :func:`configure_logging` once.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that are chatty at INFO/DEBUG
NOISY_LOGGERS = ["LiteLLM", "litellm", "httpx", "httpcore", "asyncio"]


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route log records through Rich on stderr.

    ``verbose`` enables DEBUG for soldiom; third-party loggers stay at
    WARNING either way.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, RichHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("soldiom").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
