"""Desktop notifications for save outcomes."""

from __future__ import annotations

import subprocess


class UIFeedbackAdapter:
    def __init__(self, timeout: int = 2):
        self._timeout = timeout

    def notify(self, title: str, message: str) -> None:
        try:
            subprocess.run(
                ["notify-send", "-t", str(self._timeout * 1000), title, message],
                timeout=2,
                capture_output=True,
            )
        except (OSError, subprocess.SubprocessError):
            pass  # Notifications are optional
