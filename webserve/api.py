"""Caller-facing serve()/stop() operations.

    serve("<h1>hi</h1>")                 # start on 0.0.0.0:8080 or swap document
    serve("<h1>bye</h1>", 9000, "::1")   # bind params only honoured when idle
    serve(0)                             # stop sentinel

All arguments are validated before the controller is touched, so a bad call
never disturbs a running listener.
"""
from __future__ import annotations

import numbers
from typing import Any

from .controller import ServerController
from .exceptions import ValidationError

DEFAULT_DOCUMENT = "This is an Octave WebServer instance!"

_default_controller = ServerController()


def get_controller() -> ServerController:
    """Return the process default controller."""
    return _default_controller


def _is_stop_sentinel(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return value == 0


def _coerce_port(port: Any) -> int:
    if isinstance(port, bool):
        raise ValidationError("serve: PORT must be a scalar integer value.")
    if isinstance(port, numbers.Integral):
        return int(port)
    if isinstance(port, float) and port.is_integer():
        return int(port)
    raise ValidationError("serve: PORT must be a scalar integer value.")


def serve(
    document: Any = DEFAULT_DOCUMENT,
    port: Any = None,
    address: Any = None,
    *,
    controller: ServerController | None = None,
) -> None:
    """Start serving ``document``, replace it, or stop with ``serve(0)``.

    ``port`` and ``address`` default to the configured WEBSERVE_PORT /
    WEBSERVE_ADDRESS (8080 / 0.0.0.0). Raises ValidationError for a
    non-string document or address and a non-integer port; raises
    BindError when the listener cannot bind.
    """
    ctl = controller if controller is not None else get_controller()
    if _is_stop_sentinel(document):
        ctl.stop()
        return
    if not isinstance(document, str):
        raise ValidationError("serve: HTML must be a string.")
    settings = ctl.settings
    resolved_port = settings.port if port is None else _coerce_port(port)
    if address is None:
        address = settings.address
    elif not isinstance(address, str):
        raise ValidationError("serve: ADDR must be a character vector.")
    ctl.start(document, address, resolved_port)


def stop(*, controller: ServerController | None = None) -> None:
    """Equivalent to ``serve(0)``."""
    serve(0, controller=controller)


__all__ = ["serve", "stop", "get_controller", "DEFAULT_DOCUMENT"]
