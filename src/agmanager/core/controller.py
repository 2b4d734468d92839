"""Config handlers: persistence plus the side effects of a saved change.

Sits between the sync engine and the store. Besides writing the document it
applies settings that take effect immediately: the error reporting switch and
the launch-at-login entry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .config_model import AppConfig
from .ports import AutoStart

if TYPE_CHECKING:
    from ..event_log import EventLog
    from .store import ConfigStore

logger = logging.getLogger(__name__)


class ConfigController:
    """``ConfigBackend`` used by the sync engine in the running application."""

    def __init__(
        self,
        store: ConfigStore,
        event_log: EventLog | None = None,
        autostart: AutoStart | None = None,
    ):
        self._store = store
        self._event_log = event_log
        self._autostart = autostart

    def load(self) -> AppConfig:
        return self._store.load()

    async def save(self, config: AppConfig) -> None:
        previous = self._store.cached or self._store.load()
        await self._store.save(config)

        if self._event_log is not None:
            self._event_log.set_escalation_enabled(config.error_reporting_enabled)

        if self._autostart is not None and previous.auto_startup != config.auto_startup:
            try:
                await asyncio.to_thread(self._autostart.sync, config.auto_startup)
            except OSError as e:
                logger.warning("Failed to update launch at login: %s", e)
