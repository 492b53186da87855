"""Session-level facade over the default controller.

WebInstance is a process singleton: the first ``WebInstance.instance()`` call
starts serving (``127.0.0.1:8080`` unless ``port`` / ``bind_address`` are
given); later calls return the same object and ignore settings. The server is
stopped automatically at interpreter exit.

WebServer is a cheap handle for interactive use; it serves through the
singleton and mirrors its html/addr/port for display.

Content may be a string or any object exposing ``to_html()``.
"""
from __future__ import annotations

import atexit
import logging
import threading
from typing import Any

from .api import _coerce_port, get_controller
from .controller import ServerController
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

_SETTING_KEYS = ("port", "bind_address")
_PORT_ERROR = "WebInstance: 'port' must be a scalar integer value assigning a valid port."


def render_content(content: Any, where: str) -> str:
    if isinstance(content, str):
        return content
    to_html = getattr(content, "to_html", None)
    if callable(to_html):
        html = to_html()
        if isinstance(html, str):
            return html
    raise ValidationError(f"{where}: invalid web content.")


def _normalize_settings(settings: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in settings.items():
        name = key.lower().replace("-", "_")
        if name not in _SETTING_KEYS:
            raise ValidationError(f"WebInstance: unknown optional argument '{key}'.")
        out[name] = value
    return out


class WebInstance:
    DEFAULT_HTML = "This is a GNU Octave WebServer instance!"
    DEFAULT_ADDRESS = "127.0.0.1"
    DEFAULT_PORT = 8080

    _singleton: WebInstance | None = None
    _singleton_lock = threading.Lock()

    def __init__(self, *, controller: ServerController | None = None, **settings: Any) -> None:
        opts = _normalize_settings(settings)
        addr = opts.get("bind_address", self.DEFAULT_ADDRESS)
        if not isinstance(addr, str):
            raise ValidationError("WebInstance: 'bind_address' must be a character vector.")
        try:
            port = _coerce_port(opts.get("port", self.DEFAULT_PORT))
        except ValidationError as e:
            raise ValidationError(_PORT_ERROR) from e
        if not 0 < port <= 65535:
            raise ValidationError(_PORT_ERROR)
        self.html = self.DEFAULT_HTML
        self.addr = addr
        self.port = port
        self._controller = controller if controller is not None else get_controller()
        self._controller.start(self.html, self.addr, self.port)
        self._mirror_bound_address()

    @classmethod
    def instance(cls, *, controller: ServerController | None = None, **settings: Any) -> WebInstance:
        """Return the session instance, creating (and starting) it on first call."""
        with cls._singleton_lock:
            if cls._singleton is None:
                cls._singleton = cls(controller=controller, **settings)
            elif settings:
                logger.warning(
                    "webserve.instance: already initialized on %s:%s; settings %s ignored",
                    cls._singleton.addr, cls._singleton.port, sorted(settings),
                )
            return cls._singleton

    @classmethod
    def current(cls) -> WebInstance | None:
        return cls._singleton

    @classmethod
    def reset(cls) -> None:
        """Stop the session server and forget the singleton."""
        with cls._singleton_lock:
            inst = cls._singleton
            cls._singleton = None
        if inst is not None:
            inst.shutdown()

    @property
    def controller(self) -> ServerController:
        return self._controller

    def serve(self, content: Any) -> None:
        """Replace the served content (string or ``to_html()`` object)."""
        self.html = render_content(content, "WebInstance.serve")
        self._controller.start(self.html, self.addr, self.port)
        self._mirror_bound_address()

    def shutdown(self) -> None:
        self._controller.stop()

    def _mirror_bound_address(self) -> None:
        # a controller already running elsewhere keeps its own bind
        bound = self._controller.bound_address
        if bound is not None:
            self.addr, self.port = bound


class WebServer:
    """Handle to the session web server."""

    def __init__(self) -> None:
        self.html: str | None = None
        self.addr: str | None = None
        self.port: int | None = None

    def initialize(self, **settings: Any) -> WebServer:
        inst = WebInstance.instance(**settings)
        self._sync(inst)
        return self

    def serve(self, content: Any) -> None:
        html = render_content(content, "WebServer.serve")
        inst = WebInstance.instance()
        inst.serve(html)
        self._sync(inst)

    def _sync(self, inst: WebInstance) -> None:
        self.html = inst.html
        self.addr = inst.addr
        self.port = inst.port


atexit.register(WebInstance.reset)

__all__ = ["WebInstance", "WebServer", "render_content"]
