"""Diagnostic logging setup.

stdout carries protocol traffic, so every handler installed here writes to
stderr (or a file).
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "claude_shell"


class TimestampFormatter(logging.Formatter):
    """Formats records as ``[HH:MM:SS.mmm] LEVEL name: message``."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s] %(levelname)s %(name)s: %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        stamp = datetime.fromtimestamp(record.created)
        return stamp.strftime("%H:%M:%S.") + f"{int(record.msecs):03d}"


def configure_logging(
    level: str = "INFO",
    *,
    rich: bool = False,
    log_file: str | None = None,
) -> logging.Logger:
    """Install stderr (and optional file) handlers on the package logger.

    Calling this again replaces the handlers it installed previously.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    handler: logging.Handler
    if rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            log_time_format="[%H:%M:%S]",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(TimestampFormatter())
    logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(TimestampFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def preview(text: str, limit: int = 100) -> str:
    """Shorten *text* for log lines."""
    flat = text.replace("\n", " ")
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "..."
