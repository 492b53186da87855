"""Prometheus metrics for the webserve controller.

Collectors are created lazily, once per process, in the default registry.
Recording is best-effort: a metrics failure never affects serving.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from prometheus_client import Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_METRICS: WebServeMetrics | None = None


class WebServeMetrics:
    def __init__(self) -> None:
        self.starts = Counter('webserve_starts_total', 'Listener starts (Idle -> Running)')
        self.stops = Counter('webserve_stops_total', 'Listener stops (Running -> Idle)')
        self.document_updates = Counter('webserve_document_updates_total', 'Served document replacements')
        self.bind_failures = Counter('webserve_bind_failures_total', 'Listener bind failures')
        self.requests = Counter('webserve_requests_total', 'HTTP requests answered by the listener', ['status'])
        self.running = Gauge('webserve_running', 'Listener running (1) or idle (0)')
        self.document_bytes = Gauge('webserve_document_bytes', 'Size of the served document in bytes')


def get_metrics() -> WebServeMetrics | None:
    """Return the process metrics holder, creating it on first use.

    Returns None when collector registration fails (e.g. names already taken
    by a foreign collector); callers treat that as metrics disabled.
    """
    global _METRICS  # noqa: PLW0603
    if _METRICS is not None:
        return _METRICS
    with _LOCK:
        if _METRICS is None:
            try:
                _METRICS = WebServeMetrics()
            except ValueError:
                logger.warning("webserve.metrics: collector registration failed; metrics disabled", exc_info=True)
                return None
        return _METRICS


def record(action: Callable[[WebServeMetrics], object]) -> None:
    m = get_metrics()
    if m is None:
        return
    try:
        action(m)
    except Exception:  # noqa: BLE001
        logger.debug("webserve.metrics: record failed", exc_info=True)


def setup_metrics_server(port: int = 9108, host: str = "0.0.0.0") -> WebServeMetrics | None:
    """Expose webserve metrics on a Prometheus HTTP endpoint."""
    metrics = get_metrics()
    start_http_server(port, addr=host)
    logger.info("webserve.metrics: exposition on http://%s:%s/metrics", host, port)
    return metrics


__all__ = ["WebServeMetrics", "get_metrics", "record", "setup_metrics_server"]
