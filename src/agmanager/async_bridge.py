"""Event loop thread that hosts the config sync engine.

The UI side of the application is synchronous. The sync engine relies on
loop timers and async writes, so it lives on a persistent asyncio loop in a
dedicated thread and UI calls are marshalled onto it.

Architecture:
    +------------------+         +-----------------------+
    | UI THREAD        |         | LOOP THREAD           |
    |                  |         |                       |
    | save(config)     |-------->| engine.request_save() |
    |     |            |         |   - debounce timer    |
    |     v            |         |   - serialized writes |
    | Future.result()  |<--------|   - settle waiters    |
    |                  |         |                       |
    +------------------+         +-----------------------+

Teardown order in ``stop``: run the drain coroutine (flush the pending burst,
finish queued writes), cancel whatever is still alive and log it as dropped,
then stop and close the loop.
"""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

STOP_TIMEOUT = 10.0


class AsyncBridge:
    """Persistent asyncio loop owned by a daemon thread.

    Example:
        bridge = AsyncBridge()
        bridge.start()
        config = bridge.run_sync(load_config(), timeout=5)
        bridge.stop(drain=flush_settings)
    """

    def __init__(self, name: str = "agmanager-loop"):
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        loop = self._loop
        return loop is not None and loop.is_running()

    def start(self) -> None:
        """Start the loop thread. No-op if already started."""
        with self._lock:
            if self._loop is not None:
                return

            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=self._serve, args=(loop, ready), name=self._name, daemon=True
            )
            thread.start()
            if not ready.wait(timeout=5.0):
                loop.call_soon_threadsafe(loop.stop)
                raise RuntimeError(f"{self._name}: event loop did not start")

            self._loop, self._thread = loop, thread
            logger.debug("%s: started", self._name)

    @staticmethod
    def _serve(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        loop.run_forever()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        """Schedule ``coro`` on the loop from any thread.

        Raises:
            RuntimeError: If the bridge is not started
        """
        loop = self._loop
        if loop is None:
            coro.close()
            raise RuntimeError("AsyncBridge not started. Call start() first.")
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def run_sync(self, coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
        """Submit a coroutine and block the calling thread for its result.

        Must not be called from the loop thread itself.
        """
        return self.submit(coro).result(timeout=timeout)

    def stop(
        self,
        drain: Callable[[], Awaitable[None]] | None = None,
        timeout: float = STOP_TIMEOUT,
    ) -> None:
        """Drain, cancel leftovers, then stop the loop. Safe to call multiple times.

        Args:
            drain: Coroutine function run on the loop before anything is cancelled
            timeout: Seconds allowed for the drain and again for the cancellation
        """
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is None:
                return
            self._loop = self._thread = None

            if drain is not None:
                try:
                    asyncio.run_coroutine_threadsafe(drain(), loop).result(timeout=timeout)
                except TimeoutError:
                    logger.error("%s: drain did not finish within %.1fs", self._name, timeout)
                except Exception as e:
                    logger.error("%s: drain failed: %s", self._name, e, exc_info=True)

            try:
                asyncio.run_coroutine_threadsafe(self._cancel_leftovers(), loop).result(
                    timeout=timeout
                )
            except TimeoutError:
                logger.error("%s: tasks ignored cancellation", self._name)

            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.error("%s: loop thread did not exit", self._name)
                return
            loop.close()
            logger.debug("%s: stopped", self._name)

    async def _cancel_leftovers(self) -> None:
        current = asyncio.current_task()
        leftovers = [task for task in asyncio.all_tasks() if task is not current]
        for task in leftovers:
            logger.warning("%s: dropping unfinished task %s", self._name, task.get_name())
            task.cancel()
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)
