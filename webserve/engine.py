"""Embedded HTTP engine used by the webserve controller.

Thin wrapper around ``http.server.ThreadingHTTPServer`` exposing the small
builder-style surface the controller consumes:

    engine = HttpEngine()
    engine.register_route('/', lambda: b'<html>...</html>')
    engine.bind_address('0.0.0.0').set_log_level('WARNING').bind_port(8080)
    threading.Thread(target=engine.run).start()   # blocking accept loop
    engine.wait_until_bound(5.0)                  # raises BindError on failure
    engine.stop()                                 # run() returns

Routes can be registered once per engine instance; a fresh engine is the only
way to drop them. Accepted connections are tracked so that ``stop`` callers
can force-close keep-alive clients still holding a socket open.

Handlers take no request data and return the response body as bytes.
"""
from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .exceptions import BindError, RouteError

logger = logging.getLogger(__name__)

RouteHandler = Callable[[], bytes]


class _RouteRequestHandler(BaseHTTPRequestHandler):
    server_version = "webserve/1.0"
    protocol_version = "HTTP/1.1"

    _BENIGN_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError, TimeoutError)

    @property
    def engine(self) -> HttpEngine:
        return self.server.engine  # type: ignore[attr-defined]

    def handle(self):  # override w/ same signature
        try:
            super().handle()
        except self._BENIGN_ERRORS as e:  # pragma: no cover - timing dependent
            logger.debug("webserve.engine: benign socket error suppressed: %s", e)
        except OSError as e:  # pragma: no cover - socket force-closed during stop
            logger.debug("webserve.engine: connection closed during request: %s", e)

    def log_message(self, format, *args):  # noqa: A002 - BaseHTTPRequestHandler API
        self.engine._log(logging.DEBUG, "%s - %s", self.address_string(), format % args)

    def log_error(self, format, *args):  # noqa: A002 - BaseHTTPRequestHandler API
        self.engine._log(logging.WARNING, "%s - %s", self.address_string(), format % args)

    def do_GET(self):  # noqa: N802
        self._respond(include_body=True)

    def do_HEAD(self):  # noqa: N802
        self._respond(include_body=False)

    def _respond(self, include_body: bool) -> None:
        path = urlsplit(self.path).path or "/"
        handler = self.engine.route_for(path)
        if handler is None:
            self._send(404, b"Not Found", "text/plain; charset=utf-8", include_body)
            return
        try:
            body = handler()
        except Exception:  # noqa: BLE001 - handler faults stay inside the engine
            logger.debug("webserve.engine: route handler failed for %s", path, exc_info=True)
            self._send(500, b"Internal Server Error", "text/plain; charset=utf-8", include_body)
            return
        self._send(200, body, "text/html; charset=utf-8", include_body)

    def _send(self, code: int, body: bytes, ctype: str, include_body: bool) -> None:
        self.engine._observe(code)
        self.send_response(code)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        if include_body:
            self.wfile.write(body)


class _TrackingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    # rapid stop/start cycles on the same port must not trip over TIME_WAIT
    allow_reuse_address = True

    def __init__(self, server_address, handler_cls, engine: HttpEngine) -> None:
        self.engine = engine
        if ":" in str(server_address[0]):
            self.address_family = socket.AF_INET6
        super().__init__(server_address, handler_cls)

    def process_request(self, request, client_address):
        self.engine._track(request)
        super().process_request(request, client_address)

    def shutdown_request(self, request):
        self.engine._untrack(request)
        super().shutdown_request(request)


class HttpEngine:
    def __init__(self) -> None:
        self._address = "0.0.0.0"
        self._port = 8080
        self._log_level = logging.WARNING
        self._poll_interval = 0.5
        self._routes: dict[str, RouteHandler] = {}
        self._routes_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._httpd: _TrackingHTTPServer | None = None
        self._bound = threading.Event()
        self._stop_requested = threading.Event()
        self._bind_error: BaseException | None = None
        self._bound_address: tuple[str, int] | None = None
        self._connections: set[socket.socket] = set()
        self._conn_lock = threading.Lock()
        self.request_observer: Callable[[int], None] | None = None

    # -- configuration (chainable) -------------------------------------
    def bind_address(self, address: str) -> HttpEngine:
        self._address = address
        return self

    def bind_port(self, port: int) -> HttpEngine:
        self._port = port
        return self

    def set_log_level(self, level: int | str) -> HttpEngine:
        if isinstance(level, str):
            resolved = logging.getLevelName(level.upper())
            self._log_level = resolved if isinstance(resolved, int) else logging.WARNING
        else:
            self._log_level = int(level)
        return self

    def set_poll_interval(self, seconds: float) -> HttpEngine:
        self._poll_interval = seconds
        return self

    @property
    def log_level(self) -> int:
        return self._log_level

    # -- routing --------------------------------------------------------
    def register_route(self, path: str, handler: RouteHandler) -> None:
        with self._routes_lock:
            if path in self._routes:
                raise RouteError(f"route already registered: {path}")
            self._routes[path] = handler

    def route_for(self, path: str) -> RouteHandler | None:
        with self._routes_lock:
            return self._routes.get(path)

    @property
    def routes(self) -> tuple[str, ...]:
        with self._routes_lock:
            return tuple(self._routes)

    # -- lifecycle ------------------------------------------------------
    def run(self) -> None:
        """Bind and serve until ``stop`` is called.

        Bind failures do not propagate out of this method (it normally runs on
        a background thread); they are recorded and re-raised as BindError by
        ``wait_until_bound`` in the caller's thread.
        """
        try:
            httpd = _TrackingHTTPServer((self._address, self._port), _RouteRequestHandler, self)
        except (OSError, OverflowError, ValueError) as e:
            self._bind_error = e
            self._bound.set()
            self._log(logging.ERROR, "failed to bind %s:%s: %s", self._address, self._port, e)
            return
        with self._state_lock:
            self._httpd = httpd
            stop_early = self._stop_requested.is_set()
        self._bound_address = (str(httpd.server_address[0]), int(httpd.server_address[1]))
        self._bound.set()
        if stop_early:
            httpd.server_close()
            return
        self._log(logging.INFO, "serving on %s:%s", *self._bound_address)
        try:
            httpd.serve_forever(poll_interval=self._poll_interval)
        finally:
            httpd.server_close()

    def stop(self) -> None:
        """Signal ``run`` to return. Idempotent; safe before ``run``."""
        with self._state_lock:
            if self._stop_requested.is_set():
                return
            self._stop_requested.set()
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()

    def wait_until_bound(self, timeout: float | None = None) -> tuple[str, int]:
        if not self._bound.wait(timeout):
            raise BindError(f"listener did not bind {self._address}:{self._port} within {timeout}s")
        if self._bind_error is not None:
            raise BindError(f"cannot bind {self._address}:{self._port}: {self._bind_error}") from self._bind_error
        bound = self._bound_address
        if bound is None:
            raise BindError(f"listener for {self._address}:{self._port} signalled bind without an address")
        return bound

    @property
    def bound_address(self) -> tuple[str, int] | None:
        return self._bound_address

    # -- connection tracking --------------------------------------------
    def _track(self, conn: socket.socket) -> None:
        with self._conn_lock:
            self._connections.add(conn)

    def _untrack(self, conn: socket.socket) -> None:
        with self._conn_lock:
            self._connections.discard(conn)

    @property
    def open_connections(self) -> int:
        with self._conn_lock:
            return len(self._connections)

    def close_connections(self) -> int:
        """Force-close every accepted connection still open; returns the count."""
        with self._conn_lock:
            conns = list(self._connections)
            self._connections.clear()
        for conn in conns:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # peer already gone
            conn.close()
        if conns:
            self._log(logging.DEBUG, "force-closed %s connection(s)", len(conns))
        return len(conns)

    # -- internals ------------------------------------------------------
    def _log(self, level: int, msg: str, *args) -> None:
        if level >= self._log_level:
            logger.log(level, "webserve.engine: " + msg, *args)

    def _observe(self, status: int) -> None:
        obs = self.request_observer
        if obs is not None:
            obs(status)


__all__ = ["HttpEngine", "RouteHandler"]
