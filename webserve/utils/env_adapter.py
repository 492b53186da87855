"""Environment adapter.

Consistent helpers to parse environment variables with sane defaults and
shared truthy semantics. Unparseable values fall back to the default instead
of raising, so a typo in the environment never prevents serving.
"""
from __future__ import annotations

import os
from collections.abc import Mapping

TRUTHY_SET: set[str] = {"1", "true", "yes", "on"}


def is_truthy(value: str | None) -> bool:
    if not value:
        return False
    return value.strip().lower() in TRUTHY_SET


def _lookup(name: str, env: Mapping[str, str] | None) -> str | None:
    e = env if env is not None else os.environ
    return e.get(name)


def get_str(name: str, default: str = "", env: Mapping[str, str] | None = None) -> str:
    v = _lookup(name, env)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def get_bool(name: str, default: bool = False, env: Mapping[str, str] | None = None) -> bool:
    v = _lookup(name, env)
    if v is None or v.strip() == "":
        return default
    return is_truthy(v)


def get_int(name: str, default: int, env: Mapping[str, str] | None = None) -> int:
    v = _lookup(name, env)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def get_float(name: str, default: float, env: Mapping[str, str] | None = None) -> float:
    v = _lookup(name, env)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v.strip())
    except ValueError:
        return default


__all__ = [
    "TRUTHY_SET",
    "is_truthy",
    "get_str",
    "get_bool",
    "get_int",
    "get_float",
]
