"""Strictly ordered execution of persistence operations.

Every write to the configuration file goes through one ``WriteSerializer``.
Operations are queued and executed by a single worker task, so at most one
write is in flight and writes land in the order they were submitted.

    submit(op1) ─┐
    submit(op2) ─┼──> asyncio.Queue ──> worker: await op1(); await op2(); ...
    submit(op3) ─┘                          │
                                            └─> each op settles its own future

A failing operation only fails its own future; the worker moves on to the
next one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .errors import SerializerClosedError

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


class WriteSerializer:
    """Single-worker queue of async operations.

    The worker task is created lazily on the loop that makes the first
    ``submit`` call; all later calls must come from that same loop.
    """

    def __init__(self, name: str = "write-serializer"):
        self._name = name
        self._queue: asyncio.Queue[tuple[Operation, asyncio.Future] | None] | None = None
        self._worker: asyncio.Task | None = None
        self._pending = 0
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of operations queued or running."""
        return self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, operation: Operation) -> asyncio.Future:
        """Queue ``operation`` behind every previously submitted one.

        Returns a future settled with the operation's result or exception.
        Never blocks.

        Raises:
            SerializerClosedError: If ``close()`` has been called
        """
        if self._closed:
            raise SerializerClosedError(f"{self._name} is closed")

        loop = asyncio.get_running_loop()
        if self._worker is None:
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._run(), name=self._name)

        future = loop.create_future()
        self._pending += 1
        self._queue.put_nowait((operation, future))
        return future

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                operation, future = item
                try:
                    result = await operation()
                except Exception as e:
                    logger.error("Write operation failed: %s", e, exc_info=True)
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
                finally:
                    self._pending -= 1
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued operation has completed."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Run what is already queued, then stop the worker."""
        if self._closed:
            return
        self._closed = True
        if self._worker is None:
            return
        self._queue.put_nowait(None)
        await self._worker
        self._worker = None
