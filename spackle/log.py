"""Logging setup for the ``spackle`` logger hierarchy.

Library modules only call ``logging.getLogger(__name__)``; nothing is
printed until an application (normally the CLI) calls ``setup_logging``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from spackle.utils import console as default_console

ROOT_LOGGER = "spackle"


def setup_logging(
    verbose: bool = False,
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """Attach a Rich console handler (and optionally a file handler).

    Args:
        verbose: Show ``DEBUG`` records on the console instead of only
            warnings and errors.
        log_file: Optional path that receives every record at ``DEBUG``.
        console: Console to log to; defaults to the shared spackle console.

    Returns:
        The configured ``spackle`` logger.  Calling this again replaces the
        handlers it previously installed.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_spackle_handler", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(console=console or default_console, show_path=False)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler._spackle_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    if log_file:
        target = Path(log_file)
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        file_handler._spackle_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    return logger
