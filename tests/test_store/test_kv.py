"""Tests for the in-memory key-value store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from nsmigrate.store.kv import InMemoryKeyValueStore


def test_get_put() -> None:
    store: InMemoryKeyValueStore[int] = InMemoryKeyValueStore()
    assert store.get("a") is None
    store.put("a", 1)
    assert store.get("a") == 1
    assert store.keys() == ["a"]
    assert len(store) == 1


def test_update_sees_current_value() -> None:
    store: InMemoryKeyValueStore[int] = InMemoryKeyValueStore()
    assert store.update("n", lambda v: (v or 0) + 1) == 1
    assert store.update("n", lambda v: (v or 0) + 1) == 2
    assert store.get("n") == 2


def test_update_failure_leaves_value() -> None:
    store: InMemoryKeyValueStore[int] = InMemoryKeyValueStore()
    store.put("n", 5)

    def boom(value: int | None) -> int:
        raise ValueError("nope")

    try:
        store.update("n", boom)
    except ValueError:
        pass
    assert store.get("n") == 5


def test_concurrent_updates_are_atomic() -> None:
    store: InMemoryKeyValueStore[int] = InMemoryKeyValueStore()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(
            pool.map(
                lambda _: store.update("n", lambda v: (v or 0) + 1),
                range(500),
            )
        )
    assert store.get("n") == 500
