"""Host lock/unlock hooks.

The controller pins its hosting environment while a listener is active by
calling ``lock()`` when a listener comes up and ``unlock()`` once it is fully
stopped. Interactive hosts plug in their own implementation; the defaults
below cover scripts (no-op) and tests (reference counted).
"""
from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from .exceptions import HostLockError

logger = logging.getLogger(__name__)


@runtime_checkable
class HostLock(Protocol):
    def lock(self) -> None: ...

    def unlock(self) -> None: ...


class NullHostLock:
    def lock(self) -> None:
        return

    def unlock(self) -> None:
        return


class RefCountHostLock:
    """Counts outstanding locks; unbalanced unlock raises HostLockError."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self.lock_calls = 0
        self.unlock_calls = 0

    def lock(self) -> None:
        with self._lock:
            self._count += 1
            self.lock_calls += 1
            logger.debug("webserve.host: lock count=%s", self._count)

    def unlock(self) -> None:
        with self._lock:
            if self._count <= 0:
                raise HostLockError("unlock called without a matching lock")
            self._count -= 1
            self.unlock_calls += 1
            logger.debug("webserve.host: unlock count=%s", self._count)

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def locked(self) -> bool:
        return self.count > 0


__all__ = ["HostLock", "NullHostLock", "RefCountHostLock"]
