"""webserve exception hierarchy.

Small, explicit tree so callers can tell argument problems (raised before any
state change) apart from listener failures surfaced by the HTTP engine.
"""
from __future__ import annotations


class WebServeError(Exception):
    """Base class for all webserve exceptions."""


class ValidationError(WebServeError, TypeError):
    """Invalid argument type or value passed to a public operation."""


class BindError(WebServeError, OSError):
    """Listener could not bind (port in use, bad address, bind timeout)."""


class RouteError(WebServeError):
    """Route already registered on this engine instance."""


class HostLockError(WebServeError):
    """Unbalanced host lock/unlock sequence."""


__all__ = [
    "WebServeError",
    "ValidationError",
    "BindError",
    "RouteError",
    "HostLockError",
]
