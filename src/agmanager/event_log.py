"""Recent-activity log with conditional escalation to an error reporter.

Keeps the last few seconds of log entries in memory so an error report can
carry the context that led up to it. The buffer is bounded by age and by
count. Error-level entries are forwarded to the reporter only while
escalation is enabled (the ``error_reporting_enabled`` setting).
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
import traceback
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from .core.ports import ErrorReporter

LOG_WINDOW_SECONDS = 30.0
MAX_LOG_ENTRIES = 200


@dataclass(frozen=True)
class LogEntry:
    timestamp: float
    level: int
    message: str
    formatted: str

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


@dataclass
class ReportPayload:
    """What the error reporter receives for one escalated entry."""

    level: str
    message: str
    error: BaseException | None = None
    logs: list[LogEntry] = field(default_factory=list)


def _jsonable(value, seen: set[int]):
    if isinstance(value, BaseException):
        return {
            "name": type(value).__name__,
            "message": str(value),
            "stack": "".join(traceback.format_exception(type(value), value, value.__traceback__)),
        }
    if isinstance(value, (dict, list, tuple, set)):
        if id(value) in seen:
            return "[Circular]"
        seen = seen | {id(value)}
        if isinstance(value, dict):
            return {str(k): _jsonable(v, seen) for k, v in value.items()}
        return [_jsonable(v, seen) for v in value]
    return value


def safe_stringify(value) -> str:
    """JSON-encode ``value``, tolerating exceptions and reference cycles."""
    return json.dumps(_jsonable(value, set()), default=str)


def format_message(level: int, message: str, args: tuple, timestamp: float) -> str:
    stamp = datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat(timespec="milliseconds")
    rendered = " ".join(
        safe_stringify(arg) if isinstance(arg, (dict, list, tuple, set, BaseException)) else str(arg)
        for arg in args
    )
    return f"[{stamp}] [{logging.getLevelName(level)}] {message} {rendered}".rstrip()


def extract_error(args) -> BaseException | None:
    for arg in args:
        if isinstance(arg, BaseException):
            return arg
    return None


class EventLog:
    """Bounded ring buffer of recent log entries.

    Args:
        window_seconds: Entries older than this are evicted
        max_entries: Hard cap on the number of entries kept
        reporter: Receives escalated errors (may be set later)
        clock: Time source in seconds, injectable for tests
    """

    def __init__(
        self,
        window_seconds: float = LOG_WINDOW_SECONDS,
        max_entries: int = MAX_LOG_ENTRIES,
        reporter: ErrorReporter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._window = window_seconds
        self._max_entries = max_entries
        self._reporter = reporter
        self._clock = clock
        self._entries: deque[LogEntry] = deque()
        self._escalation_enabled = False
        self._lock = threading.Lock()

    @property
    def escalation_enabled(self) -> bool:
        return self._escalation_enabled

    def set_escalation_enabled(self, enabled: bool) -> None:
        self._escalation_enabled = bool(enabled)

    def set_reporter(self, reporter: ErrorReporter | None) -> None:
        self._reporter = reporter

    def append(self, entry: LogEntry) -> None:
        """Add ``entry`` and enforce the age window, then the count cap."""
        with self._lock:
            self._entries.append(entry)
            now = self._clock()
            while self._entries and now - self._entries[0].timestamp > self._window:
                self._entries.popleft()
            while len(self._entries) > self._max_entries:
                self._entries.popleft()

    def snapshot(self) -> list[LogEntry]:
        """Return a copy of the buffer, oldest first."""
        with self._lock:
            return list(self._entries)

    def record(self, level: int, message: str, *args) -> LogEntry:
        """Log ``message`` with extra context values and escalate if needed."""
        now = self._clock()
        entry = LogEntry(
            timestamp=now,
            level=level,
            message=message,
            formatted=format_message(level, message, args, now),
        )
        self.append(entry)
        self.maybe_escalate(entry, extract_error(args))
        return entry

    def maybe_escalate(self, entry: LogEntry, error: BaseException | None = None) -> bool:
        """Forward ``entry`` to the reporter if it qualifies.

        Returns True when a report was handed over. Reporter failures are
        written to stderr and never propagate.
        """
        reporter = self._reporter
        if entry.level < logging.ERROR or not self._escalation_enabled or reporter is None:
            return False

        payload = ReportPayload(
            level=entry.level_name,
            message=entry.message,
            error=error,
            logs=self.snapshot(),
        )
        try:
            reporter.report(payload)
        except Exception:
            print("Failed to deliver error report", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
            return False
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.snapshot())


class EventLogHandler(logging.Handler):
    """Feeds stdlib log records into an ``EventLog``."""

    def __init__(self, event_log: EventLog, level: int = logging.NOTSET):
        super().__init__(level)
        self.event_log = event_log

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=record.created,
                level=record.levelno,
                message=record.getMessage(),
                formatted=self.format(record),
            )
            error = record.exc_info[1] if record.exc_info else None
            if error is None and isinstance(record.args, tuple):
                error = extract_error(record.args)
            self.event_log.append(entry)
            self.event_log.maybe_escalate(entry, error)
        except Exception:
            self.handleError(record)
