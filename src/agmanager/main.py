#!/usr/bin/env python3
"""agmanager: settings service for the desktop shell.

Wires the store, the sync engine and the event log together and exposes a
thread-safe facade (``load`` / ``save`` / ``is_saving``) for the UI layer.
"""

from __future__ import annotations

import signal
import threading
from concurrent.futures import Future

from . import __version__
from .adapters.autostart import AutoStartAdapter
from .adapters.error_reporting import SentryReporter
from .adapters.ui_feedback import UIFeedbackAdapter
from .async_bridge import AsyncBridge
from .config import config
from .core.config_model import AppConfig
from .core.controller import ConfigController
from .core.ports import AutoStart, ErrorReporter, UIFeedback
from .core.store import ConfigStore
from .core.sync_engine import ConfigSyncEngine
from .event_log import EventLog
from .logging_setup import configure_logging
from .platform_utils import IS_WINDOWS


async def _call(fn, *args):
    return fn(*args)


class ConfigSyncApp:
    """Main application object.

    Args:
        settings: Process settings (defaults to the environment-derived ``config``)
        ui: Notification sink for save outcomes
        autostart: Launch-at-login integration
        reporter: Error reporter; when omitted a Sentry reporter is created on
            startup if the user opted in and a DSN is configured
    """

    def __init__(
        self,
        settings=config,
        ui: UIFeedback | None = None,
        autostart: AutoStart | None = None,
        reporter: ErrorReporter | None = None,
    ):
        self.settings = settings
        self.event_log = EventLog(settings.LOG_WINDOW_SECONDS, settings.MAX_LOG_ENTRIES)
        configure_logging(self.event_log, settings.LOG_DIR, settings.DEBUG)

        self.store = ConfigStore(settings.DATA_DIR)
        self.controller = ConfigController(
            self.store,
            self.event_log,
            autostart if autostart is not None else AutoStartAdapter(settings.APP_NAME),
        )
        self.engine = ConfigSyncEngine(
            self.controller,
            debounce_ms=settings.SAVE_DEBOUNCE_MS,
            ui=ui if ui is not None else UIFeedbackAdapter(),
        )
        self.bridge = AsyncBridge()
        self._reporter = reporter
        self._shutdown_event = threading.Event()

    def start(self) -> AppConfig:
        """Start the loop thread, load settings and set up error reporting."""
        self.bridge.start()
        initial = self.load()
        self._init_error_reporting(initial)
        return initial

    def _init_error_reporting(self, initial: AppConfig) -> None:
        if initial.error_reporting_enabled:
            if self._reporter is None:
                sentry = SentryReporter(
                    self.settings.SENTRY_DSN, release=f"{self.settings.APP_NAME}@{__version__}"
                )
                if sentry.init():
                    self._reporter = sentry
            if self._reporter is not None:
                self.event_log.set_reporter(self._reporter)
                self.event_log.set_escalation_enabled(True)
                return

        self.event_log.set_escalation_enabled(False)
        self.event_log.set_reporter(None)

    def load(self) -> AppConfig:
        return self.bridge.run_sync(_call(self.engine.load))

    def current(self) -> AppConfig:
        """Current view, reloaded from disk if a failed save left it stale."""
        return self.bridge.run_sync(_call(self.engine.get))

    def save(self, new_config: AppConfig) -> Future:
        """Request a save; the returned future settles with the burst."""
        return self.bridge.submit(self._save(new_config))

    async def _save(self, new_config: AppConfig) -> None:
        await self.engine.request_save(new_config)

    def is_saving(self) -> bool:
        return self.engine.is_saving()

    def run(self):
        """Run until a shutdown is requested"""
        initial = self.start()
        print("\n" + "=" * 50)
        print(f"agmanager {__version__}")
        print("=" * 50)
        print(f"Settings: {self.store.path}")
        print(f"Language: {initial.language}  Theme: {initial.theme}")
        print(f"Proxy port: {initial.proxy.port}")
        print("\nPress Ctrl+C to quit")
        print("=" * 50 + "\n")

        try:
            self._shutdown_event.wait()
        except KeyboardInterrupt:
            pass

        self.shutdown()

    def shutdown(self):
        """Flush pending settings and stop the loop thread"""
        self.bridge.stop(drain=self._close)

    async def _close(self) -> None:
        await self.engine.close()
        await self.store.close()

    def request_shutdown(self):
        """Request application shutdown (thread-safe)"""
        self._shutdown_event.set()


def main():
    app = ConfigSyncApp()

    def signal_handler(sig, frame):
        app.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    if not IS_WINDOWS:
        signal.signal(signal.SIGTERM, signal_handler)

    app.run()


if __name__ == "__main__":
    main()
