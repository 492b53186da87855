"""webserve: a single controllable HTTP endpoint serving one in-memory document."""

from .api import DEFAULT_DOCUMENT, get_controller, serve, stop
from .controller import ControllerState, ServerController
from .exceptions import BindError, HostLockError, RouteError, ValidationError, WebServeError
from .host import HostLock, NullHostLock, RefCountHostLock
from .instance import WebInstance, WebServer

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_DOCUMENT",
    "serve",
    "stop",
    "get_controller",
    "ServerController",
    "ControllerState",
    "WebInstance",
    "WebServer",
    "HostLock",
    "NullHostLock",
    "RefCountHostLock",
    "WebServeError",
    "ValidationError",
    "BindError",
    "RouteError",
    "HostLockError",
]
