from __future__ import annotations

import logging
import threading
import urllib.error

import pytest

from webserve.engine import HttpEngine
from webserve.exceptions import BindError, RouteError


def _run(engine: HttpEngine) -> threading.Thread:
    t = threading.Thread(target=engine.run, daemon=True)
    t.start()
    return t


def test_register_route_once():
    engine = HttpEngine()
    engine.register_route('/', lambda: b'x')
    with pytest.raises(RouteError):
        engine.register_route('/', lambda: b'y')
    assert engine.routes == ('/',)


def test_builder_methods_chain():
    engine = HttpEngine()
    assert engine.bind_address('127.0.0.1').set_log_level('error').bind_port(0) is engine
    assert engine.log_level == logging.ERROR


def test_unknown_log_level_name_falls_back_to_warning():
    engine = HttpEngine().set_log_level('chatty')
    assert engine.log_level == logging.WARNING
    assert HttpEngine().set_log_level(logging.DEBUG).log_level == logging.DEBUG


def test_run_serves_routes_until_stopped(http_get):
    engine = HttpEngine().bind_address('127.0.0.1').bind_port(0).set_poll_interval(0.05)
    engine.register_route('/', lambda: 'héllo'.encode('utf-8'))
    t = _run(engine)
    host, port = engine.wait_until_bound(5)
    code, body, _ = http_get(port)
    assert (code, body) == (200, 'héllo')
    engine.stop()
    t.join(5)
    assert not t.is_alive()
    with pytest.raises(urllib.error.URLError):
        http_get(port, timeout=1.0)


def test_stop_is_idempotent_and_safe_before_run():
    engine = HttpEngine().bind_address('127.0.0.1').bind_port(0)
    engine.stop()
    engine.stop()
    t = _run(engine)
    t.join(5)
    assert not t.is_alive()
    assert engine.wait_until_bound(1)[1] != 0


def test_bind_error_surfaces_in_caller(occupied_port):
    engine = HttpEngine().bind_address('127.0.0.1').bind_port(occupied_port)
    t = _run(engine)
    with pytest.raises(BindError) as ei:
        engine.wait_until_bound(5)
    assert isinstance(ei.value.__cause__, OSError)
    assert isinstance(ei.value, OSError)
    t.join(5)
    assert not t.is_alive()


def test_bind_timeout_without_run():
    engine = HttpEngine()
    with pytest.raises(BindError):
        engine.wait_until_bound(0.05)


def test_handler_fault_returns_500_and_observer_sees_status(http_get):
    statuses: list[int] = []

    def boom() -> bytes:
        raise RuntimeError('boom')

    engine = HttpEngine().bind_address('127.0.0.1').bind_port(0).set_poll_interval(0.05)
    engine.register_route('/', boom)
    engine.request_observer = statuses.append
    t = _run(engine)
    _, port = engine.wait_until_bound(5)
    try:
        with pytest.raises(urllib.error.HTTPError) as ei:
            http_get(port)
        assert ei.value.code == 500
        with pytest.raises(urllib.error.HTTPError):
            http_get(port, '/nope')
    finally:
        engine.stop()
        t.join(5)
    assert statuses == [500, 404]


def test_query_string_maps_to_root_route(http_get):
    engine = HttpEngine().bind_address('127.0.0.1').bind_port(0).set_poll_interval(0.05)
    engine.register_route('/', lambda: b'root')
    t = _run(engine)
    _, port = engine.wait_until_bound(5)
    try:
        assert http_get(port, '/?refresh=1')[1] == 'root'
    finally:
        engine.stop()
        t.join(5)


def test_close_connections_without_clients_returns_zero():
    assert HttpEngine().close_connections() == 0


def test_bound_event_without_address_raises_bind_error():
    engine = HttpEngine().bind_address('127.0.0.1').bind_port(0)
    engine._bound.set()
    with pytest.raises(BindError):
        engine.wait_until_bound(0.05)
