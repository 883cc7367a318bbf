from __future__ import annotations

import threading


class MemoryKeyValueStore:
    """Dict-backed KeyValueStore for tests and throwaway caches."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def raw_keys(self) -> list[str]:
        with self._lock:
            return list(self._items)
