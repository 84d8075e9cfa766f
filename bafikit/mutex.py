"""A mutual-exclusion cell guarding a single value."""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class MutexGuard(Generic[T]):
    """Access to the guarded value while the lock is held."""

    def __init__(self, mutex: "Mutex[T]") -> None:
        self._mutex = mutex
        self._held = True

    @property
    def value(self) -> T:
        return self._mutex._data

    @value.setter
    def value(self, new_value: T) -> None:
        self._mutex._data = new_value

    def release(self) -> None:
        if self._held:
            self._held = False
            self._mutex._release()

    def __enter__(self) -> "MutexGuard[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class Mutex(Generic[T]):
    """Lock around a value; ``lock()`` blocks until the value is free."""

    def __init__(self, value: T) -> None:
        self._lock = threading.Lock()
        self._data = value

    def lock(self) -> MutexGuard[T]:
        self._lock.acquire()
        return MutexGuard(self)

    def _release(self) -> None:
        if self._lock.locked():
            self._lock.release()

    def into_inner(self) -> T:
        return self._data

    def force_unlock(self) -> None:
        """Release the lock regardless of who holds it."""
        self._release()

    def locked(self) -> bool:
        return self._lock.locked()