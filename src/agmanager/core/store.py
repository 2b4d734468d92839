"""Durable storage of the configuration document.

The document lives in a single pretty-printed JSON file. Loading never fails:
a missing, unreadable or malformed file yields the defaults. Saving replaces
the file wholesale and is always routed through a ``WriteSerializer``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import fields, replace
from pathlib import Path

from .config_model import DEFAULT_APP_CONFIG, DEFAULT_UPSTREAM_PROXY, AppConfig
from .serializer import WriteSerializer

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "gui_config.json"


def _accepts(default, value) -> bool:
    """Check that a persisted value fits the type of its default."""
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, (str, dict, list)):
        return isinstance(value, type(default))
    return True


def _merge_fields(base, raw: dict, skip: tuple[str, ...] = ()):
    """Overlay the known fields of ``raw`` onto the dataclass ``base``."""
    updates = {}
    for f in fields(base):
        if f.name in skip or f.name not in raw:
            continue
        value = raw[f.name]
        default = getattr(base, f.name)
        if not _accepts(default, value):
            logger.warning(
                "Config: ignoring %s=%r (expected %s)", f.name, value, type(default).__name__
            )
            continue
        updates[f.name] = dict(value) if isinstance(value, dict) else value
    return replace(base, **updates)


def merge_with_defaults(raw: dict, defaults: AppConfig = DEFAULT_APP_CONFIG) -> AppConfig:
    """Build a fully populated document from a (possibly partial) raw mapping.

    Top-level fields are merged over ``defaults``, then the proxy block field
    by field, then the upstream proxy block field by field over the upstream
    template. Keys that are not part of the schema are dropped.

    Raises:
        ValueError: If ``raw`` is not a mapping
    """
    if not isinstance(raw, dict):
        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")

    raw_proxy = raw.get("proxy")
    if not isinstance(raw_proxy, dict):
        raw_proxy = {}

    upstream = defaults.proxy.upstream_proxy
    if "upstream_proxy" in raw_proxy:
        raw_upstream = raw_proxy["upstream_proxy"]
        if isinstance(raw_upstream, dict):
            upstream = _merge_fields(upstream or DEFAULT_UPSTREAM_PROXY, raw_upstream)
        elif raw_upstream is None:
            upstream = None

    proxy = _merge_fields(defaults.proxy, raw_proxy, skip=("upstream_proxy",))
    proxy = replace(proxy, upstream_proxy=upstream)

    merged = _merge_fields(defaults, raw, skip=("proxy",))
    return replace(merged, proxy=proxy)


class ConfigStore:
    """Reads and writes the configuration document at ``<data_dir>/gui_config.json``.

    Args:
        data_dir: Application data directory
        defaults: Document used to backfill missing fields
        serializer: Serializer for writes (a private one is created if omitted)
    """

    def __init__(
        self,
        data_dir: str | Path,
        defaults: AppConfig = DEFAULT_APP_CONFIG,
        serializer: WriteSerializer | None = None,
    ):
        self._data_dir = Path(data_dir)
        self._defaults = defaults
        self._serializer = serializer or WriteSerializer(name="config-writer")
        self._cached: AppConfig | None = None

    @property
    def path(self) -> Path:
        return self._data_dir / CONFIG_FILENAME

    @property
    def defaults(self) -> AppConfig:
        return self._defaults

    @property
    def cached(self) -> AppConfig | None:
        """Last document loaded or successfully saved, without I/O."""
        return self._cached

    def merge_with_defaults(self, raw: dict) -> AppConfig:
        return merge_with_defaults(raw, self._defaults)

    def load(self) -> AppConfig:
        """Load the document, falling back to the defaults on any failure."""
        path = self.path
        try:
            if not path.exists():
                logger.info("Config: File not found at %s, returning default", path)
                self._cached = self._defaults
                return self._defaults

            raw = json.loads(path.read_text(encoding="utf-8"))
            merged = self.merge_with_defaults(raw)
        except Exception as e:
            logger.error("Config: Failed to load config: %s", e, exc_info=True)
            self._cached = self._defaults
            return self._defaults

        self._cached = merged
        return merged

    def save(self, config: AppConfig) -> asyncio.Future:
        """Queue a whole-file write of ``config``.

        Returns a future for this write only; it fails with the I/O or
        serialization error if the write does.
        """
        return self._serializer.submit(lambda: self._write(config))

    async def _write(self, config: AppConfig) -> None:
        content = json.dumps(config.to_dict(), indent=2, ensure_ascii=False)
        await asyncio.to_thread(self._write_file, content)
        self._cached = config
        logger.info("Config: Saved to %s", self.path)

    def _write_file(self, content: str) -> None:
        # Write-temp-then-rename so a crash never leaves a half-written file
        self._data_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(content)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    async def close(self) -> None:
        """Finish queued writes and stop the serializer."""
        await self._serializer.close()
