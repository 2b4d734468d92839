"""Core ports (interfaces) for agmanager.

These protocols define the boundaries between the config sync core and
platform/vendor-specific adapters. They are intentionally small and
capability-oriented to keep the core decoupled.
"""

from __future__ import annotations

from typing import Awaitable, Protocol, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from ..event_log import ReportPayload
    from .config_model import AppConfig


@runtime_checkable
class ConfigBackend(Protocol):
    """Loads and persists the configuration document."""

    def load(self) -> "AppConfig":
        """Return the effective document; never raises."""

    def save(self, config: "AppConfig") -> Awaitable[None]:
        """Persist the whole document; the awaitable fails if the write does."""


@runtime_checkable
class UIFeedback(Protocol):
    """User-visible notifications."""

    def notify(self, title: str, message: str) -> None:
        """Display a notification."""


@runtime_checkable
class ErrorReporter(Protocol):
    """External error reporting service."""

    def report(self, payload: "ReportPayload") -> None:
        """Submit one report with its recent-log snapshot."""


@runtime_checkable
class AutoStart(Protocol):
    """Launch-at-login integration."""

    def sync(self, enabled: bool) -> None:
        """Create or remove the login entry."""
