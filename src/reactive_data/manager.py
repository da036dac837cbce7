"""ReactiveDataManager — per-key reactive cache.

Wires the shared cache and channel registry to the fetch and update
pipelines, and exposes the public operations:

    manager = ReactiveDataManager(fetch_user, updater=save_user)

    async with manager.get_stream(42) as stream:   # live values for key 42
        user = await manager.get_data(42)          # fetch (or cache hit)
        await manager.update_data(42, renamed)     # optimistic update
        manager.get_current_value(42)              # latest known value

All operations must run on the event loop that owns the manager.  Nothing
here blocks: state changes happen synchronously and only waiting on a
collaborator suspends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from reactive_data._types import MISS
from reactive_data.observability.collector import CacheCollector
from reactive_data.observability.log import EventLog
from reactive_data.reactive.channel import KeyedChannelRegistry
from reactive_data.reactive.fetch import FetchPipeline
from reactive_data.reactive.update import UpdatePipeline
from reactive_data.store import Cache

if TYPE_CHECKING:
    import asyncio

    from reactive_data._types import FetchFilter, Fetcher, Miss, UpdateFilter, Updater
    from reactive_data.config import ManagerConfig
    from reactive_data.reactive.channel import Subscription


class ReactiveDataManager[K, T]:
    """Fetches, caches, streams and optimistically updates values per key.

    Args:
        fetcher: ``(key) -> value`` collaborator, sync or async.
        updater: Optional ``(key, value) -> result`` collaborator.  Without
            one, ``update_data`` writes locally and resolves to ``None``.
        fetch_filter: Optional filter for fetch results.  Return ``MISS``
            to reject, ``None`` to keep the value, or a replacement.
        update_filter: Optional filter for update confirmations, same
            rules.  Defaults to ``fetch_filter``.
        collector: Optional collector recording every operation.

    """

    def __init__(
        self,
        fetcher: Fetcher[K, T],
        *,
        updater: Updater[K, T] | None = None,
        fetch_filter: FetchFilter[K, T] | None = None,
        update_filter: UpdateFilter[K] | None = None,
        collector: CacheCollector | None = None,
    ) -> None:
        self._cache: Cache[K, T] = Cache()
        self._channels: KeyedChannelRegistry[K, T] = KeyedChannelRegistry()
        self._collector = collector
        self._disposed = False
        self._fetch = FetchPipeline(
            self._cache,
            self._channels,
            fetcher,
            fetch_filter=fetch_filter,
            collector=collector,
        )
        self._update = UpdatePipeline(
            self._cache,
            self._channels,
            updater,
            update_filter=update_filter if update_filter is not None else fetch_filter,
            collector=collector,
        )

    @classmethod
    def from_config(cls, config: ManagerConfig) -> ReactiveDataManager[Any, Any]:
        """Build a manager from a ``ManagerConfig``."""
        collector = None
        if config.collect_events:
            collector = CacheCollector(EventLog(config.max_events), verbose=config.verbose)
        return cls(
            config.fetcher,
            updater=config.updater,
            fetch_filter=config.fetch_filter,
            update_filter=config.update_filter,
            collector=collector,
        )

    # ----- Public operations -----

    def get_stream(self, key: K) -> Subscription[T]:
        """Subscribe to ``key``.

        The subscription starts with the latest item for the key, if any.
        After ``dispose()`` it is already ended.

        """
        return self._channels.channel_for(key).subscribe()

    def get_current_value(self, key: K) -> T | Miss:
        """Latest value published for ``key``, or ``MISS``."""
        return self._channels.latest_value(key)

    def get_data(self, key: K, *, force_refresh: bool = False) -> asyncio.Future[T]:
        """Fetch ``key``, or serve it from the cache unless ``force_refresh``.

        Returns a future; a cache hit is already resolved.  A newer
        ``get_data`` for the same key rejects this one with
        ``OperationCancelledError``.

        """
        return self._fetch.get_data(key, force_refresh=force_refresh)

    def update_data(self, key: K, value: T) -> asyncio.Future[Any]:
        """Optimistically set ``key`` to ``value`` and confirm it remotely.

        ``get_current_value(key)`` returns ``value`` as soon as this call
        returns.  If the updater fails the previous value is restored and
        the future rejects with ``OptimisticUpdateError``.

        """
        return self._update.update_data(key, value)

    def clear_cache(self) -> None:
        """Drop every cached value and publish ``MISS`` to every channel.

        In-flight fetches and updates keep running.

        """
        cleared = self._cache.clear()
        channels = self._channels.channels()
        for channel in channels:
            channel.publish(MISS)
        if self._collector is not None:
            self._collector.record_clear(
                entries_cleared=cleared,
                channels_notified=len(channels),
            )

    def dispose(self) -> None:
        """Cancel every in-flight operation and close every channel.

        Terminal: the manager is not meant to be used afterwards, though
        doing so does not raise.

        """
        if self._disposed:
            return
        self._disposed = True
        cancelled = self._fetch.tracker.cancel_all("disposed")
        cancelled += self._update.tracker.cancel_all("disposed")
        closed = self._channels.close()
        if self._collector is not None:
            self._collector.record_dispose(
                operations_cancelled=cancelled,
                channels_closed=closed,
            )

    # ----- Introspection -----

    @property
    def collector(self) -> CacheCollector | None:
        return self._collector

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def cached_keys(self) -> frozenset[K]:
        """Keys currently held in the cache."""
        return self._cache.keys()

    def has_pending_fetch(self, key: K) -> bool:
        return key in self._fetch.tracker

    def has_pending_update(self, key: K) -> bool:
        return key in self._update.tracker
