"""Sentry adapter for escalated log entries."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sentry_sdk

from ..platform_utils import get_platform_info

if TYPE_CHECKING:
    from ..event_log import ReportPayload

logger = logging.getLogger(__name__)

_USER_PATH_PATTERNS = (
    (re.compile(r"(Users\\+)[^\\]+"), r"\1***"),
    (re.compile(r"(/Users/)[^/\s]+"), r"\1***"),
    (re.compile(r"(/home/)[^/\s]+"), r"\1***"),
)


def scrub_user_paths(text: str) -> str:
    """Mask the user name segment of home directory paths."""
    for pattern, replacement in _USER_PATH_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def before_send(event: dict, hint: dict) -> dict:
    for exception in (event.get("exception") or {}).get("values") or []:
        if exception.get("value"):
            exception["value"] = scrub_user_paths(exception["value"])
    return event


class SentryReporter:
    """Submits reports to Sentry.

    Args:
        dsn: Project DSN; reporting is impossible without one
        release: Release tag attached to every event
    """

    def __init__(self, dsn: str, release: str | None = None):
        self._dsn = dsn
        self._release = release

    def init(self) -> bool:
        """Initialise the Sentry client. Returns False when no DSN is set."""
        if not self._dsn:
            logger.info("Error reporting requested but no SENTRY_DSN configured")
            return False
        sentry_sdk.init(dsn=self._dsn, release=self._release, before_send=before_send)
        sentry_sdk.set_context("platform", get_platform_info())
        return True

    def report(self, payload: ReportPayload) -> None:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("log_level", payload.level.lower())
            scope.set_context(
                "recent_logs",
                {
                    "entries": [
                        {
                            "timestamp": datetime.fromtimestamp(
                                entry.timestamp, tz=timezone.utc
                            ).isoformat(),
                            "level": entry.level_name,
                            "message": entry.message,
                            "formatted": entry.formatted,
                        }
                        for entry in payload.logs
                    ]
                },
            )
            scope.set_extra("log_message", payload.message)
            if payload.error is not None:
                sentry_sdk.capture_exception(payload.error)
                return
            sentry_sdk.capture_message(payload.message, level="error")
