"""Cache — last-known-good value per key.

Plain key -> value mapping, unbounded, no eviction.  Entries live until
``remove``/``clear`` or until overwritten.  The cache never notifies
channels; callers pair each write with the matching channel publish.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from reactive_data._types import MISS, Miss

if TYPE_CHECKING:
    from collections.abc import Iterator


class Cache[K, T]:
    """Source of truth for synchronous reads."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: dict[K, T] = {}

    def get(self, key: K) -> T | Miss:
        """Return the cached value for ``key``, or ``MISS``."""
        return self._entries.get(key, MISS)

    def set(self, key: K, value: T) -> None:
        self._entries[key] = value

    def remove(self, key: K) -> None:
        """Drop ``key`` if present."""
        self._entries.pop(key, None)

    def clear(self) -> int:
        """Empty the cache and return the number of entries dropped."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> frozenset[K]:
        """Snapshot of the cached keys."""
        return frozenset(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(tuple(self._entries))
