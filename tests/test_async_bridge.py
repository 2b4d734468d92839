import asyncio
import logging

import pytest

from agmanager.async_bridge import AsyncBridge


@pytest.fixture
def bridge():
    bridge = AsyncBridge(name="test-loop")
    bridge.start()
    yield bridge
    bridge.stop(timeout=2)


async def _answer():
    return 42


def test_run_sync_returns_coroutine_result(bridge):
    assert bridge.is_running
    assert bridge.run_sync(_answer(), timeout=2) == 42


def test_submit_before_start_raises():
    bridge = AsyncBridge()
    coro = _answer()

    with pytest.raises(RuntimeError):
        bridge.submit(coro)
    assert coro.cr_frame is None


def test_stop_runs_drain_before_stopping():
    bridge = AsyncBridge()
    bridge.start()
    drained = []

    async def drain():
        await asyncio.sleep(0.01)
        drained.append(asyncio.get_running_loop().is_running())

    bridge.stop(drain=drain, timeout=2)

    assert drained == [True]
    assert not bridge.is_running
    bridge.stop()


def test_stop_cancels_and_logs_leftover_tasks(caplog):
    bridge = AsyncBridge(name="test-loop")
    bridge.start()

    async def spawn():
        asyncio.get_running_loop().create_task(asyncio.sleep(60), name="stuck-write")

    bridge.run_sync(spawn(), timeout=2)
    with caplog.at_level(logging.WARNING, logger="agmanager.async_bridge"):
        bridge.stop(timeout=2)

    assert "dropping unfinished task stuck-write" in caplog.text


def test_slow_drain_times_out_and_is_cancelled(caplog):
    bridge = AsyncBridge(name="test-loop")
    bridge.start()

    async def drain():
        await asyncio.sleep(60)

    with caplog.at_level(logging.WARNING, logger="agmanager.async_bridge"):
        bridge.stop(drain=drain, timeout=0.1)

    assert "drain did not finish" in caplog.text
    assert "dropping unfinished task" in caplog.text
    assert not bridge.is_running
