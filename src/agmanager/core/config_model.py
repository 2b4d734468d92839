"""Core configuration model (structured view of gui_config.json)."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class UpstreamProxyConfig:
    enabled: bool = False
    protocol: str = "http"
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class ProxyConfig:
    enabled: bool = False
    port: int = 8080
    api_key: str = ""
    auto_start: bool = False
    allow_lan_access: bool = False
    request_timeout: int = 120
    anthropic_mapping: dict = field(default_factory=dict)
    upstream_proxy: UpstreamProxyConfig | None = None


@dataclass(frozen=True)
class AppConfig:
    """The whole configuration document.

    Instances are never mutated; use ``dataclasses.replace`` to derive a new
    document and hand it to the sync engine.
    """

    language: str = "en"
    theme: str = "light"
    auto_refresh: bool = True
    refresh_interval: int = 15
    auto_startup: bool = False
    error_reporting_enabled: bool = False
    proxy: ProxyConfig = field(default_factory=ProxyConfig)

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_APP_CONFIG = AppConfig()

# Field template used when a persisted document carries an upstream proxy block
DEFAULT_UPSTREAM_PROXY = UpstreamProxyConfig()
