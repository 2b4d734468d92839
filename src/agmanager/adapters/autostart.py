"""Launch-at-login integration.

Linux: XDG autostart ``.desktop`` file
macOS: per-user LaunchAgent plist
Windows: ``HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Run`` value
"""

from __future__ import annotations

import logging
import plistlib
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

_RUN_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"


class AutoStartAdapter:
    """Creates or removes the per-user login entry.

    Args:
        app_name: Name used for the entry
        command: Command line to launch (defaults to ``python -m agmanager``)
        platform: ``sys.platform`` value, overridable for tests
        home: Home directory, overridable for tests
    """

    def __init__(
        self,
        app_name: str = "agmanager",
        command: list[str] | None = None,
        platform: str = sys.platform,
        home: Path | None = None,
    ):
        self._app_name = app_name
        self._command = command or [sys.executable, "-m", "agmanager"]
        self._platform = platform
        self._home = home or Path.home()

    def entry_path(self) -> Path | None:
        if self._platform.startswith("linux"):
            return self._home / ".config" / "autostart" / f"{self._app_name}.desktop"
        if self._platform == "darwin":
            return self._home / "Library" / "LaunchAgents" / f"com.{self._app_name}.plist"
        return None

    def sync(self, enabled: bool) -> None:
        if self._platform == "win32":
            self._sync_windows(enabled)
            return

        path = self.entry_path()
        if path is None:
            logger.warning("Launch at login is not supported on %s", self._platform)
            return

        if not enabled:
            path.unlink(missing_ok=True)
            logger.info("Removed login entry %s", path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        if self._platform == "darwin":
            path.write_bytes(self._launch_agent())
        else:
            path.write_text(self._desktop_entry(), encoding="utf-8")
        logger.info("Installed login entry %s", path)

    def _desktop_entry(self) -> str:
        return (
            "[Desktop Entry]\n"
            "Type=Application\n"
            f"Name={self._app_name}\n"
            f"Exec={' '.join(self._command)}\n"
            "X-GNOME-Autostart-enabled=true\n"
        )

    def _launch_agent(self) -> bytes:
        return plistlib.dumps(
            {
                "Label": f"com.{self._app_name}",
                "ProgramArguments": self._command,
                "RunAtLoad": True,
            }
        )

    def _sync_windows(self, enabled: bool) -> None:
        import winreg

        command = subprocess.list2cmdline(self._command)
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, _RUN_KEY, 0, winreg.KEY_SET_VALUE) as key:
            if enabled:
                winreg.SetValueEx(key, self._app_name, 0, winreg.REG_SZ, command)
            else:
                try:
                    winreg.DeleteValue(key, self._app_name)
                except FileNotFoundError:
                    pass
