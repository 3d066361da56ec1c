"""Keyed mutable state shared by the progress and change trackers.

Callers depend on the :class:`KeyValueStore` capability, never on a
module-level dict, so tests and services can inject their own.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol


class KeyValueStore[V](Protocol):
    def get(self, key: str) -> V | None: ...
    def put(self, key: str, value: V) -> None: ...
    def update(
        self, key: str, fn: Callable[[V | None], V]
    ) -> V: ...
    def keys(self) -> list[str]: ...


class InMemoryKeyValueStore[V]:
    """Dict guarded by a re-entrant lock.

    ``update`` runs ``fn`` under the lock, so read-modify-write of a
    single key is atomic with respect to other callers.
    """

    def __init__(self) -> None:
        self._data: dict[str, V] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> V | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def update(self, key: str, fn: Callable[[V | None], V]) -> V:
        with self._lock:
            value = fn(self._data.get(key))
            self._data[key] = value
            return value

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
