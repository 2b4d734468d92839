"""Debounced synchronization of the configuration document.

Callers get an immediately updated in-memory view and one durable write per
burst of save requests:

    request_save(A) ──┐                      view = A
    request_save(B) ──┼─ timer re-armed ──>   view = B
    request_save(C) ──┘                      view = C
                         debounce elapses
                              │
                              v
                  backend.save(C)  ──>  every waiter of the burst settles
                                        with the same outcome

On failure the view is rolled back to the last document known to be
persisted, or marked stale when there is none so readers reload it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .config_model import AppConfig
from .ports import ConfigBackend, UIFeedback
from .state_machine import SyncEvent, SyncState, SyncStateMachine

logger = logging.getLogger(__name__)

SAVE_DEBOUNCE_MS = 400


@dataclass
class PendingWrite:
    """The burst currently accumulating save requests."""

    document: AppConfig
    revision: int
    waiters: list[asyncio.Future] = field(default_factory=list)


class ConfigSyncEngine:
    """Owns the in-memory view of the configuration document.

    Args:
        backend: Where documents are loaded from and persisted to
        debounce_ms: Quiet period after the last request before flushing
        ui: Optional notification sink for save outcomes

    Must be driven from a single event loop; ``request_save`` uses the
    running loop for its timer.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        debounce_ms: int = SAVE_DEBOUNCE_MS,
        ui: UIFeedback | None = None,
    ):
        self._backend = backend
        self._debounce = debounce_ms / 1000
        self._ui = ui
        self._view: AppConfig | None = None
        self._known_good: AppConfig | None = None
        self._stale = False
        self._revision = 0
        self._pending: PendingWrite | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._flushes: set[asyncio.Task] = set()
        self._notifications: set[asyncio.Future] = set()
        self._machine = SyncStateMachine()

    @property
    def state(self) -> SyncState:
        return self._machine.state

    @property
    def view(self) -> AppConfig | None:
        """Current document as callers should see it (None while stale)."""
        return self._view

    @property
    def known_good(self) -> AppConfig | None:
        return self._known_good

    @property
    def is_stale(self) -> bool:
        return self._stale

    def is_saving(self) -> bool:
        return self._machine.in_flight > 0

    def load(self) -> AppConfig:
        """Load from the backend and treat the result as persisted."""
        config = self._backend.load()
        self._view = config
        self._known_good = config
        self._stale = False
        return config

    def get(self) -> AppConfig:
        """Return the view, reloading it from the backend when stale or unset."""
        if self._view is None or self._stale:
            return self.load()
        return self._view

    def request_save(self, config: AppConfig) -> asyncio.Future:
        """Record ``config`` as the latest state and schedule its persistence.

        The view is updated before this returns. The returned future settles
        when the burst this request joined has been flushed.
        """
        loop = asyncio.get_running_loop()
        self._revision += 1
        self._view = config
        self._stale = False

        waiter = loop.create_future()
        if self._timer is not None:
            self._timer.cancel()
            self._pending.document = config
            self._pending.revision = self._revision
            self._pending.waiters.append(waiter)
        else:
            self._pending = PendingWrite(config, self._revision, [waiter])

        self._machine.transition(SyncEvent.REQUEST)
        self._timer = loop.call_later(self._debounce, self._on_timer)
        return waiter

    def _on_timer(self) -> None:
        self._timer = None
        self._start_flush()

    def _start_flush(self) -> asyncio.Task | None:
        burst, self._pending = self._pending, None
        if burst is None:
            return None

        self._machine.transition(SyncEvent.FLUSH)
        task = asyncio.get_running_loop().create_task(self._flush(burst))
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)
        return task

    async def _flush(self, burst: PendingWrite) -> None:
        try:
            await self._backend.save(burst.document)
        except Exception as e:
            self._on_failure(burst, e)
        else:
            self._on_success(burst)
        finally:
            self._machine.transition(SyncEvent.SETTLE)

    def _on_success(self, burst: PendingWrite) -> None:
        self._known_good = burst.document
        if self._revision == burst.revision:
            self._view = burst.document
            self._stale = False

        self._notify("Settings saved", "Your configuration has been updated.")
        for waiter in burst.waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _on_failure(self, burst: PendingWrite, error: Exception) -> None:
        # A newer request owns the view now; its own flush decides its fate.
        if self._revision == burst.revision:
            if self._known_good is not None:
                self._view = self._known_good
                logger.warning("Config save failed, reverted to last saved settings: %s", error)
            else:
                self._view = None
                self._stale = True
                logger.warning("Config save failed, settings marked stale: %s", error)
        else:
            logger.warning("Config save failed, superseded by a newer request: %s", error)

        self._notify("Error saving settings", str(error) or "Failed to save settings")
        for waiter in burst.waiters:
            if not waiter.done():
                waiter.set_exception(error)

    def _notify(self, title: str, message: str) -> None:
        # Notification sinks may block (desktop notifier subprocess), keep them off the loop
        if self._ui is None:
            return
        future = asyncio.get_running_loop().run_in_executor(None, self._ui.notify, title, message)
        self._notifications.add(future)
        future.add_done_callback(self._on_notified)

    def _on_notified(self, future: asyncio.Future) -> None:
        self._notifications.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.warning("Save notification failed: %s", future.exception())

    def flush_now(self) -> asyncio.Task | None:
        """Skip the remaining debounce delay and flush the pending burst.

        Used at shutdown so no requested state is dropped. Returns the flush
        task, or None when nothing was pending.
        """
        if self._timer is None:
            return None
        self._timer.cancel()
        self._timer = None
        return self._start_flush()

    async def close(self) -> None:
        """Flush anything pending, wait for in-flight writes and their notifications."""
        self.flush_now()
        if self._flushes:
            await asyncio.gather(*list(self._flushes), return_exceptions=True)
        if self._notifications:
            await asyncio.gather(*list(self._notifications), return_exceptions=True)
