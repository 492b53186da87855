"""Runtime settings for the webserve controller.

Single-pass environment hydration object replacing scattered os.environ
lookups. Pure data container; the only side effect is an optional one-line
summary log when WEBSERVE_SETTINGS_LOG=1.
"""
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field

from .utils import env_adapter as _env

__all__ = ["WebServeSettings", "get_settings", "DEFAULT_ADDRESS", "DEFAULT_PORT"]

DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 8080

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WebServeSettings:
    # Bind defaults used by serve() when the caller omits them
    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_PORT

    # Engine behaviour
    log_level: str = "WARNING"
    poll_interval: float = 0.5
    close_connections: bool = True

    # Lifecycle bounds (seconds)
    start_timeout: float = 5.0
    join_timeout: float = 5.0

    metrics_enabled: bool = True

    _env_snapshot: dict[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> WebServeSettings:
        e = env if env is not None else os.environ
        settings = cls(
            address=_env.get_str("WEBSERVE_ADDRESS", DEFAULT_ADDRESS, e),
            port=_env.get_int("WEBSERVE_PORT", DEFAULT_PORT, e),
            log_level=_env.get_str("WEBSERVE_LOG_LEVEL", "WARNING", e).upper(),
            poll_interval=max(0.05, _env.get_float("WEBSERVE_POLL_INTERVAL", 0.5, e)),
            close_connections=_env.get_bool("WEBSERVE_CLOSE_CONNECTIONS", True, e),
            start_timeout=max(0.0, _env.get_float("WEBSERVE_START_TIMEOUT", 5.0, e)),
            join_timeout=max(0.0, _env.get_float("WEBSERVE_JOIN_TIMEOUT", 5.0, e)),
            metrics_enabled=_env.get_bool("WEBSERVE_METRICS", True, e),
            _env_snapshot={k: v for k, v in e.items() if k.startswith("WEBSERVE_")},
        )
        if _env.get_bool("WEBSERVE_SETTINGS_LOG", False, e):
            logger.info(
                "webserve.settings: address=%s port=%s log_level=%s start_timeout=%.2f join_timeout=%.2f close_connections=%s metrics=%s",
                settings.address, settings.port, settings.log_level, settings.start_timeout,
                settings.join_timeout, settings.close_connections, settings.metrics_enabled,
            )
        return settings


# Lazy singleton (thread-safe) to avoid repeated parsing
_settings_lock = threading.Lock()
_settings_singleton: WebServeSettings | None = None


def get_settings(force_reload: bool = False) -> WebServeSettings:
    global _settings_singleton
    if _settings_singleton is not None and not force_reload:
        return _settings_singleton
    with _settings_lock:
        if _settings_singleton is None or force_reload:
            _settings_singleton = WebServeSettings.from_env()
        return _settings_singleton
