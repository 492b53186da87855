"""Lifecycle controller for the single served document.

ServerController owns one HttpEngine, the listener thread running it, the
root-route flag and the current document. It cycles between two states for
the life of the process:

    IDLE    --start--> RUNNING   (route bound, listener thread launched)
    RUNNING --start--> RUNNING   (document swapped in place)
    RUNNING --stop-->  IDLE      (listener joined, engine replaced)
    IDLE    --stop-->  IDLE      (no-op)

``start`` returns only once the listener socket is bound, or raises BindError
with the controller back in IDLE. ``stop`` never raises for an already
finished listener. The host lock hook is taken once per IDLE -> RUNNING
transition and released once per RUNNING -> IDLE transition.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from . import metrics as _metrics
from .document import DocumentStore
from .engine import HttpEngine
from .exceptions import BindError
from .host import HostLock, NullHostLock
from .settings import DEFAULT_ADDRESS, DEFAULT_PORT, WebServeSettings, get_settings

logger = logging.getLogger(__name__)

ROOT_ROUTE = "/"


class ControllerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class ServerController:
    def __init__(
        self,
        *,
        host_lock: HostLock | None = None,
        settings: WebServeSettings | None = None,
        engine_factory: Callable[[], HttpEngine] = HttpEngine,
        document: str = "",
    ) -> None:
        self._settings = settings if settings is not None else get_settings()
        self._host_lock: HostLock = host_lock if host_lock is not None else NullHostLock()
        self._engine_factory = engine_factory
        self._lock = threading.RLock()
        self._document = DocumentStore(document)
        self._engine = self._new_engine()
        self._route_registered = False
        self._thread: threading.Thread | None = None
        self._bound_address: tuple[str, int] | None = None
        self._requested: tuple[str, int] | None = None

    # -- introspection ----------------------------------------------------
    @property
    def state(self) -> ControllerState:
        with self._lock:
            return ControllerState.RUNNING if self._thread is not None else ControllerState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state is ControllerState.RUNNING

    @property
    def document(self) -> str:
        return self._document.text()

    @property
    def route_registered(self) -> bool:
        with self._lock:
            return self._route_registered

    @property
    def bound_address(self) -> tuple[str, int] | None:
        with self._lock:
            return self._bound_address

    @property
    def engine(self) -> HttpEngine:
        with self._lock:
            return self._engine

    @property
    def settings(self) -> WebServeSettings:
        return self._settings

    # -- lifecycle --------------------------------------------------------
    def start(self, document: str, address: str = DEFAULT_ADDRESS, port: int = DEFAULT_PORT) -> None:
        """Serve ``document``; launch the listener on ``address:port`` if idle.

        While running, only the document is replaced: address and port are
        ignored until the next ``stop``.
        """
        with self._lock:
            self._document.set(document)
            self._record(lambda m: (m.document_updates.inc(), m.document_bytes.set(len(self._document))))
            if self._thread is not None:
                if self._bound_address is not None and (address, port) != self._requested:
                    logger.debug(
                        "webserve.controller: already running on %s:%s; ignoring %s:%s (stop first to rebind)",
                        *self._bound_address, address, port,
                    )
                return
            self._launch(address, port)

    def stop(self) -> None:
        """Stop the listener (if any) and reset to a fresh, unrouted engine."""
        with self._lock:
            thread = self._thread
            engine = self._engine
            engine.stop()
            if self._settings.close_connections:
                engine.close_connections()
            if thread is not None:
                self._join(thread)
            self._thread = None
            self._bound_address = None
            self._reset_engine()
            if thread is not None:
                logger.info("webserve.controller: stopped")
                self._record(lambda m: (m.stops.inc(), m.running.set(0)))
                self._host_lock.unlock()

    # -- internals --------------------------------------------------------
    def _launch(self, address: str, port: int) -> None:
        engine = self._engine
        if not self._route_registered:
            engine.register_route(ROOT_ROUTE, self._document.payload)
            self._route_registered = True
        engine.request_observer = self._observe_request
        engine.bind_address(address).set_log_level(self._settings.log_level).bind_port(port)
        engine.set_poll_interval(self._settings.poll_interval)
        thread = threading.Thread(target=engine.run, name="webserve-listener", daemon=True)
        thread.start()
        try:
            bound = engine.wait_until_bound(self._settings.start_timeout)
        except BindError:
            self._record(lambda m: m.bind_failures.inc())
            engine.stop()
            self._join(thread)
            self._reset_engine()
            logger.error("webserve.controller: failed to start on %s:%s", address, port)
            raise
        self._thread = thread
        self._bound_address = bound
        self._requested = (address, port)
        self._host_lock.lock()
        self._record(lambda m: (m.starts.inc(), m.running.set(1)))
        logger.info("webserve.controller: started on %s:%s", *bound)

    def _join(self, thread: threading.Thread) -> None:
        try:
            thread.join(timeout=self._settings.join_timeout)
        except RuntimeError:
            # joining a thread that never started; nothing to wait for
            logger.debug("webserve.controller: join skipped", exc_info=True)
            return
        if thread.is_alive():
            logger.warning(
                "webserve.controller: listener thread still alive after %.1fs; abandoning it",
                self._settings.join_timeout,
            )

    def _reset_engine(self) -> None:
        self._engine = self._new_engine()
        self._route_registered = False

    def _new_engine(self) -> HttpEngine:
        return self._engine_factory()

    def _observe_request(self, status: int) -> None:
        self._record(lambda m: m.requests.labels(status=str(status)).inc())

    def _record(self, action: Callable[[_metrics.WebServeMetrics], object]) -> None:
        if self._settings.metrics_enabled:
            _metrics.record(action)


__all__ = ["ServerController", "ControllerState", "ROOT_ROUTE"]
