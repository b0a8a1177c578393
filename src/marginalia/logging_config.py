"""
Logging configuration for marginalia.

Library modules only create loggers; handlers are installed here by the CLI
(or by an embedding application that wants the same output).
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "marginalia"


def verbose_requested() -> bool:
    return os.environ.get("MARGINALIA_VERBOSE", "").lower() in ("1", "true", "yes", "on")


def configure_logging(verbose: bool = False) -> logging.Handler:
    """
    Send marginalia log records to stderr through rich.

    WARNING and above by default; DEBUG when *verbose* or MARGINALIA_VERBOSE
    is set. Calling it again replaces the previously installed handler.

    Returns:
        The installed handler.
    """
    level = logging.DEBUG if verbose or verbose_requested() else logging.WARNING
    logger = logging.getLogger(_LOGGER_NAME)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(min(level, logger.level or logging.WARNING))
    return handler


def configure_ops_log(directory: Path | str) -> logging.Handler:
    """Configure a persistent operations log next to the record store.

    Writes to {directory}/marginalia-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed later.
    """
    log_path = Path(directory) / "marginalia-ops.log"
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    logger = logging.getLogger(_LOGGER_NAME)
    for existing in list(logger.handlers):
        if isinstance(existing, RotatingFileHandler):
            logger.removeHandler(existing)
            existing.close()
    logger.addHandler(handler)
    # Let INFO through even when the console handler is quiet
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler
