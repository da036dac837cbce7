"""Per-key broadcast channels with last-item replay.

Each key observed by the manager gets exactly one ``Channel``.  A channel
remembers the most recent item pushed to it (a value or an error) and
hands it to every new ``Subscription`` before any live item, so late
subscribers always start from the current state.

Subscribers are fed through their own ``asyncio.Queue`` (unbounded), so a
publish never blocks and never drops an item.  Publishing is synchronous;
only consuming a subscription awaits.  Channels hold their subscriptions
weakly: a subscription dropped without ``close()`` detaches once collected.

Error items are raised from ``Subscription.__anext__`` without ending the
subscription: iterate again to keep receiving items.
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from reactive_data._types import MISS, Miss

if TYPE_CHECKING:
    from types import TracebackType


@dataclass(frozen=True, slots=True)
class _ErrorItem:
    """An error pushed through a channel."""

    error: BaseException


# Queue marker: the channel (or the subscription) was closed
_END: Any = object()
# Channel marker: nothing has been pushed yet
_NOTHING: Any = object()


class Subscription[T]:
    """A live view on one channel.

    Usable as an async iterator and as an async context manager::

        async with manager.get_stream("user:1") as stream:
            async for value in stream:
                ...

    Closing the channel ends iteration after the items already queued;
    closing the subscription ends it at once.

    """

    __slots__ = ("__weakref__", "_channel", "_discard", "_done", "_queue")

    def __init__(self, channel: Channel[T] | None = None) -> None:
        self._channel = channel
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._done = False
        self._discard = False

    @property
    def closed(self) -> bool:
        """True once no new items will be delivered."""
        return self._done

    @property
    def pending(self) -> int:
        """Number of items queued and not yet consumed."""
        if self._discard:
            return 0
        size = self._queue.qsize()
        # A finished queue holds the end marker
        return size - 1 if self._done else size

    def close(self) -> None:
        """Detach from the channel.  Items already queued are discarded."""
        if self._channel is not None:
            self._channel._detach(self)
            self._channel = None
        self._discard = True
        self._end()

    def _deliver(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def _end(self) -> None:
        if not self._done:
            self._done = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T | Miss:
        while True:
            item = await self._queue.get()
            if item is _END:
                # Keep the marker so every later call also stops.
                self._queue.put_nowait(_END)
                raise StopAsyncIteration
            if self._discard:
                continue
            if isinstance(item, _ErrorItem):
                raise item.error
            return item

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class Channel[T]:
    """Broadcast channel for a single key, replaying its latest item.

    Starts empty: no item is replayed until the first publish.

    Args:
        key: The key this channel carries values for.
        closed: Create the channel already closed (used after dispose).

    """

    __slots__ = ("_closed", "_key", "_latest_item", "_latest_value", "_subscribers")

    def __init__(self, key: object, *, closed: bool = False) -> None:
        self._key = key
        self._closed = closed
        self._latest_item: Any = _NOTHING
        self._latest_value: T | Miss = MISS
        self._subscribers: weakref.WeakSet[Subscription[T]] = weakref.WeakSet()

    @property
    def key(self) -> object:
        return self._key

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def latest_value(self) -> T | Miss:
        """Most recent value published, or ``MISS``.  Errors do not replace it."""
        return self._latest_value

    @property
    def has_error(self) -> bool:
        """True when the most recent item was an error."""
        return isinstance(self._latest_item, _ErrorItem)

    @property
    def latest_error(self) -> BaseException | None:
        """The error carried by the most recent item, if it was one."""
        if isinstance(self._latest_item, _ErrorItem):
            return self._latest_item.error
        return None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription[T]:
        """Open a subscription, primed with the latest item if there is one."""
        if self._closed:
            sub: Subscription[T] = Subscription(None)
            sub._end()
            return sub

        sub = Subscription(self)
        if self._latest_item is not _NOTHING:
            sub._deliver(self._latest_item)
        self._subscribers.add(sub)
        return sub

    def publish(self, value: T | Miss) -> int:
        """Push a value to every subscriber.

        Returns:
            Number of subscribers notified (0 when closed).

        """
        if self._closed:
            return 0
        self._latest_value = value
        self._latest_item = value
        return self._broadcast(value)

    def publish_error(self, error: BaseException) -> int:
        """Push an error to every subscriber.  The latest value is kept."""
        if self._closed:
            return 0
        item = _ErrorItem(error)
        self._latest_item = item
        return self._broadcast(item)

    def close(self) -> None:
        """End every subscription once its queued items are consumed.

        Later publishes are ignored.

        """
        if self._closed:
            return
        self._closed = True
        subscribers = tuple(self._subscribers)
        self._subscribers = weakref.WeakSet()
        for sub in subscribers:
            sub._channel = None
            sub._end()

    def _broadcast(self, item: Any) -> int:
        count = 0
        for sub in tuple(self._subscribers):
            sub._deliver(item)
            count += 1
        return count

    def _detach(self, sub: Subscription[T]) -> None:
        self._subscribers.discard(sub)


class KeyedChannelRegistry[K, T]:
    """Lazily creates and retains one channel per key.

    Channels are never removed one by one; ``close()`` ends them all.
    After ``close()`` the registry hands out detached, already-closed
    channels so late subscribers terminate immediately.

    """

    __slots__ = ("_channels", "_closed")

    def __init__(self) -> None:
        self._channels: dict[K, Channel[T]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def channel_for(self, key: K) -> Channel[T]:
        """Return the channel for ``key``, creating it on first access."""
        channel = self._channels.get(key)
        if channel is None:
            if self._closed:
                return Channel(key, closed=True)
            channel = Channel(key)
            self._channels[key] = channel
        return channel

    def latest_value(self, key: K) -> T | Miss:
        """Latest value pushed for ``key``; ``MISS`` if none or unknown key."""
        channel = self._channels.get(key)
        if channel is None:
            return MISS
        return channel.latest_value

    def channels(self) -> tuple[Channel[T], ...]:
        """Snapshot of every retained channel."""
        return tuple(self._channels.values())

    def keys(self) -> frozenset[K]:
        return frozenset(self._channels)

    def close(self) -> int:
        """Close every channel, empty the registry and return how many were closed."""
        self._closed = True
        channels = tuple(self._channels.values())
        self._channels.clear()
        for channel in channels:
            channel.close()
        return len(channels)

    def __contains__(self, key: object) -> bool:
        return key in self._channels

    def __len__(self) -> int:
        return len(self._channels)
