"""Event log — bounded, thread-safe store of cache events.

Keeps the most recent ``CacheEvent`` objects in a ring buffer and answers
the questions asked of a cache: what happened to this key, which fetches
failed, how many updates were rolled back.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Safe for
    concurrent reads and writes from multiple threads.

"""

import threading
from collections import Counter, deque
from collections.abc import Collection
from typing import Any

from reactive_data._types import MISS
from reactive_data.observability.events import CacheEvent


class EventLog:
    """Bounded event store with query support.

    When the buffer is full, the oldest events are discarded.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[CacheEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @property
    def max_events(self) -> int:
        return self._max_events

    def append(self, event: CacheEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        key: object = MISS,
        outcomes: Collection[str] | None = None,
        since_ns: int = 0,
        limit: int = 100,
    ) -> list[CacheEvent]:
        """Query events, most recent first.

        Args:
            event_type: Only return events of this type.
            key: Only return events recorded for this key.  Keys are
                matched by ``repr()``, the form events store them in.
            outcomes: Only return events whose outcome is one of these.
                Events without an outcome never match.
            since_ns: Only return events at or after this timestamp.
            limit: Maximum number of events to return, applied after
                every other filter.

        """
        wanted_key = None if key is MISS else repr(key)
        with self._lock:
            results: list[CacheEvent] = []
            for event in reversed(self._events):
                if len(results) >= limit:
                    break
                if event_type is not None and not isinstance(event, event_type):
                    continue
                if since_ns and event.timestamp_ns < since_ns:
                    continue
                if wanted_key is not None and getattr(event, "key", None) != wanted_key:
                    continue
                if outcomes is not None and getattr(event, "outcome", None) not in outcomes:
                    continue
                results.append(event)
            return results

    def clear(self) -> int:
        """Clear all events and return the count that was cleared."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Event counts per type and per ``Type.outcome``."""
        with self._lock:
            events = list(self._events)

        by_type = Counter(type(event).__name__ for event in events)
        by_outcome = Counter(
            f"{type(event).__name__}.{event.outcome}"
            for event in events
            if hasattr(event, "outcome")
        )
        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": dict(by_type),
            "by_outcome": dict(by_outcome),
        }
