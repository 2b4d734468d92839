"""Logging configuration: console, app.log and the in-memory event log."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from .event_log import EventLog, EventLogHandler

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

_COLORS = {
    logging.DEBUG: "\x1b[90m",  # Gray
    logging.INFO: "\x1b[36m",  # Cyan
    logging.WARNING: "\x1b[33m",  # Yellow
    logging.ERROR: "\x1b[31m",  # Red
    logging.CRITICAL: "\x1b[31m",
}
_RESET = "\x1b[0m"


class ColorFormatter(logging.Formatter):
    """``[LEVEL] message`` with the level tag colored by severity."""

    def format(self, record: logging.LogRecord) -> str:
        color = _COLORS.get(record.levelno, "")
        message = super().format(record)
        return f"{color}[{record.levelname}]{_RESET} {message}"


def configure_logging(
    event_log: EventLog,
    log_dir: Path | None = None,
    debug: bool = False,
) -> logging.Logger:
    """Attach agmanager's handlers to the ``agmanager`` logger.

    Safe to call more than once; previously installed handlers are replaced.
    """
    root = logging.getLogger("agmanager")
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColorFormatter("%(message)s"))
    root.addHandler(console)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir / "app.log", encoding="utf-8")
        except OSError as e:
            print(f"Failed to open log file in {log_dir}: {e}", file=sys.stderr)
        else:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root.addHandler(file_handler)

    event_handler = EventLogHandler(event_log)
    event_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    root.addHandler(event_handler)
    return root
