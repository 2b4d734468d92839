import json
import threading
from dataclasses import replace

import pytest

from agmanager.core.config_model import AppConfig
from agmanager.core.controller import ConfigController
from agmanager.core.ports import AutoStart, ConfigBackend
from agmanager.core.store import ConfigStore
from agmanager.event_log import EventLog


class _AutoStart(AutoStart):
    def __init__(self, error=None):
        self.calls = []
        self.threads = []
        self.error = error

    def sync(self, enabled: bool) -> None:
        self.calls.append(enabled)
        self.threads.append(threading.current_thread())
        if self.error is not None:
            raise self.error


def _controller(tmp_path, autostart=None):
    event_log = EventLog()
    controller = ConfigController(ConfigStore(tmp_path), event_log, autostart)
    return controller, event_log


def test_controller_is_a_config_backend(tmp_path):
    controller, _ = _controller(tmp_path)
    assert isinstance(controller, ConfigBackend)


def test_controller_load_delegates_to_store(tmp_path):
    (tmp_path / "gui_config.json").write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
    controller, _ = _controller(tmp_path)

    assert controller.load().theme == "dark"


@pytest.mark.asyncio
async def test_controller_save_applies_error_reporting_flag(tmp_path):
    controller, event_log = _controller(tmp_path)

    await controller.save(AppConfig(error_reporting_enabled=True))
    assert event_log.escalation_enabled is True

    await controller.save(AppConfig(error_reporting_enabled=False))
    assert event_log.escalation_enabled is False


@pytest.mark.asyncio
async def test_controller_syncs_autostart_only_on_change(tmp_path):
    autostart = _AutoStart()
    controller, _ = _controller(tmp_path, autostart)
    base = controller.load()

    await controller.save(replace(base, theme="dark"))
    await controller.save(replace(base, auto_startup=True))
    await controller.save(replace(base, auto_startup=True, language="ru"))
    await controller.save(replace(base, auto_startup=False))

    assert autostart.calls == [True, False]


@pytest.mark.asyncio
async def test_controller_autostart_failure_does_not_fail_save(tmp_path):
    controller, _ = _controller(tmp_path, _AutoStart(error=PermissionError("denied")))

    await controller.save(AppConfig(auto_startup=True))

    saved = json.loads((tmp_path / "gui_config.json").read_text(encoding="utf-8"))
    assert saved["auto_startup"] is True


@pytest.mark.asyncio
async def test_controller_failed_write_leaves_flag_untouched(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    event_log = EventLog()
    controller = ConfigController(ConfigStore(blocker), event_log)

    with pytest.raises(OSError):
        await controller.save(AppConfig(error_reporting_enabled=True))

    assert event_log.escalation_enabled is False


@pytest.mark.asyncio
async def test_controller_runs_autostart_sync_off_the_loop_thread(tmp_path):
    autostart = _AutoStart()
    controller, _ = _controller(tmp_path, autostart)

    await controller.save(AppConfig(auto_startup=True))

    assert autostart.calls == [True]
    assert autostart.threads != [threading.current_thread()]
