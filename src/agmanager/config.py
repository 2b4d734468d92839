"""Process settings for agmanager, read from the environment / .env"""
import os
from pathlib import Path

from dotenv import load_dotenv

from .platform_utils import get_agent_dir, get_app_data_dir

load_dotenv()


class Config:
    """Settings that are not part of the user-editable document"""

    APP_NAME = "agmanager"

    # Paths
    DATA_DIR = Path(os.getenv("AGMANAGER_DATA_DIR") or get_app_data_dir(APP_NAME))
    LOG_DIR = Path(os.getenv("AGMANAGER_LOG_DIR") or get_agent_dir(APP_NAME))

    # Delay after the last settings change before it is written to disk
    SAVE_DEBOUNCE_MS = int(os.getenv("SAVE_DEBOUNCE_MS", "400"))

    # Recent-log window attached to error reports
    LOG_WINDOW_SECONDS = float(os.getenv("LOG_WINDOW_SECONDS", "30"))
    MAX_LOG_ENTRIES = int(os.getenv("MAX_LOG_ENTRIES", "200"))

    # Error reporting (only used when the user opted in)
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")

    DEBUG = os.getenv("DEBUG", "false").lower() == "true"


config = Config()
