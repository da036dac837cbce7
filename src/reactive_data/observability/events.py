"""Event model for cache observability.

Defines one event type per manager operation: fetches, updates, cache
clears and disposal.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Keys are stored as their ``repr()`` so events stay printable and
queryable whatever the key type is.

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal

type FetchOutcome = Literal["hit", "fetched", "failed", "filtered", "cancelled"]
type UpdateOutcome = Literal[
    "confirmed", "local", "rolled_back", "filtered", "failed", "cancelled"
]


# ---------------------------------------------------------------------------
# Operation events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FetchEvent:
    """A ``get_data`` call settled.

    Attributes:
        key: ``repr()`` of the key.
        outcome: How the fetch ended (``hit`` = served from cache).
        duration_ms: Time spent waiting on the fetcher (0 for hits).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    key: str
    outcome: FetchOutcome
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    """An ``update_data`` call settled.

    Attributes:
        key: ``repr()`` of the key.
        outcome: How the update ended (``local`` = no updater configured).
        duration_ms: Time spent waiting on the updater.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    key: str
    outcome: UpdateOutcome
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Manager lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CacheCleared:
    """``clear_cache`` emptied the cache.

    Attributes:
        entries_cleared: Number of cache entries dropped.
        channels_notified: Number of channels that received ``MISS``.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    entries_cleared: int
    channels_notified: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ManagerDisposed:
    """``dispose`` tore the manager down.

    Attributes:
        operations_cancelled: Fetches and updates cancelled.
        channels_closed: Channels closed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    operations_cancelled: int
    channels_closed: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type CacheEvent = FetchEvent | UpdateEvent | CacheCleared | ManagerDisposed


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
