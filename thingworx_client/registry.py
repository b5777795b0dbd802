"""Process-wide keyed caches."""

from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


class Registry(Generic[T]):
    """
    Append-only keyed map used for every shared cache in the client.

    Servers, auth strategies and immutable connections are all looked up
    through a registry so that equal keys always yield the same object.
    The factory runs under the lock, so a key is populated at most once even
    when several threads race on the first lookup.
    """

    def __init__(self, name: str = "registry"):
        self.name = name
        self._items: dict[Hashable, T] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        """Return the item stored under key, creating it with factory if missing."""
        # Fast path without the lock, entries are never removed while in use
        item = self._items.get(key)
        if item is not None:
            return item

        with self._lock:
            item = self._items.get(key)
            if item is None:
                item = factory()
                self._items[key] = item
            return item

    def get(self, key: Hashable) -> T | None:
        return self._items.get(key)

    def clear(self) -> None:
        """Drop every entry. Objects already handed out stay valid."""
        with self._lock:
            self._items.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Registry({self.name!r}, size={len(self._items)})"
