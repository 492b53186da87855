"""Shared fixtures for webserve tests.

Every controller built through the ``controller`` fixture is stopped on
teardown so no listener thread or port outlives its test.
"""
from __future__ import annotations

import contextlib
import socket
import threading
import urllib.request
import warnings

import pytest

from webserve.controller import ServerController
from webserve.host import RefCountHostLock
from webserve.settings import WebServeSettings

# Sockets force-closed during stop can surface ResourceWarnings at GC time
warnings.simplefilter("ignore", ResourceWarning)


def _find_free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def _fetch(port: int, path: str = '/', *, method: str = 'GET', host: str = '127.0.0.1', timeout: float = 3.0):
    req = urllib.request.Request(f'http://{host}:{port}{path}', method=method)
    with contextlib.closing(urllib.request.urlopen(req, timeout=timeout)) as resp:  # noqa: S310 - test-only local URL
        return resp.getcode(), resp.read().decode('utf-8'), dict(resp.headers)


@pytest.fixture
def free_port() -> int:
    return _find_free_port()


@pytest.fixture
def port_factory():
    return _find_free_port


@pytest.fixture
def http_get():
    """Return ``fetch(port, path='/') -> (status, body, headers)``."""
    return _fetch


@pytest.fixture
def fast_settings() -> WebServeSettings:
    return WebServeSettings(address='127.0.0.1', poll_interval=0.05, start_timeout=5.0, join_timeout=5.0)


@pytest.fixture
def host_lock() -> RefCountHostLock:
    return RefCountHostLock()


@pytest.fixture
def controller(fast_settings, host_lock):
    ctl = ServerController(host_lock=host_lock, settings=fast_settings)
    yield ctl
    ctl.stop()


@pytest.fixture
def occupied_port():
    """A port with a live listening socket bound on 127.0.0.1."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(('127.0.0.1', 0))
    s.listen(1)
    try:
        yield s.getsockname()[1]
    finally:
        s.close()


class FakeEngine:
    """In-memory stand-in for HttpEngine recording what the controller asks of it."""

    instances: list[FakeEngine] = []

    def __init__(self) -> None:
        self.address = None
        self.port = None
        self.log_level = None
        self.poll_interval = None
        self.routes_map: dict = {}
        self.request_observer = None
        self.stop_calls = 0
        self._stopped = threading.Event()
        FakeEngine.instances.append(self)

    def bind_address(self, address):
        self.address = address
        return self

    def bind_port(self, port):
        self.port = port
        return self

    def set_log_level(self, level):
        self.log_level = level
        return self

    def set_poll_interval(self, seconds):
        self.poll_interval = seconds
        return self

    def register_route(self, path, handler):
        assert path not in self.routes_map, f"duplicate route {path}"
        self.routes_map[path] = handler

    @property
    def routes(self):
        return tuple(self.routes_map)

    def run(self):
        self._stopped.wait()

    def wait_until_bound(self, timeout=None):
        return (self.address, self.port)

    def stop(self):
        self.stop_calls += 1
        self._stopped.set()

    def close_connections(self):
        return 0


@pytest.fixture
def fake_engine_controller(fast_settings, host_lock):
    FakeEngine.instances = []
    ctl = ServerController(host_lock=host_lock, settings=fast_settings, engine_factory=FakeEngine)
    yield ctl
    ctl.stop()


@pytest.fixture
def fake_engines(fake_engine_controller):
    """Engines created so far by ``fake_engine_controller`` (oldest first)."""
    return FakeEngine.instances
