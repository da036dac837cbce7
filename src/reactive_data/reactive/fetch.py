"""Fetch pipeline — fetch -> filter -> cache write -> channel publish.

Orchestrates ``get_data``:
    1. Supersede any in-flight fetch for the key
    2. Serve a warm cache entry immediately (re-publishing it)
    3. Otherwise call the fetcher in the key's fetch slot
    4. Filter the result, write the cache, publish to the channel
    5. On failure publish the error to the channel and reject the caller

A superseded fetch never touches the cache or the channel: its caller is
rejected with ``OperationCancelledError`` and the newer fetch owns the slot.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from reactive_data._errors import DataFilteredError, OperationCancelledError
from reactive_data.reactive.filters import apply_filter
from reactive_data.reactive.tracker import Operation, OperationTracker

if TYPE_CHECKING:
    from reactive_data._types import FetchFilter, Fetcher
    from reactive_data.observability.collector import CacheCollector
    from reactive_data.observability.events import FetchOutcome
    from reactive_data.reactive.channel import KeyedChannelRegistry
    from reactive_data.store import Cache


class FetchPipeline[K, T]:
    """Runs fetches for a manager, one in-flight fetch per key.

    Args:
        cache: Shared cache.
        channels: Shared channel registry.
        fetcher: ``(key) -> T`` collaborator, sync or async.
        fetch_filter: Optional result filter (see ``reactive.filters``).
        collector: Optional event collector.

    """

    def __init__(
        self,
        cache: Cache[K, T],
        channels: KeyedChannelRegistry[K, T],
        fetcher: Fetcher[K, T],
        *,
        fetch_filter: FetchFilter[K, T] | None = None,
        collector: CacheCollector | None = None,
    ) -> None:
        self._cache = cache
        self._channels = channels
        self._fetcher = fetcher
        self._fetch_filter = fetch_filter
        self._collector = collector
        self._tracker: OperationTracker[K] = OperationTracker("fetch")

    @property
    def tracker(self) -> OperationTracker[K]:
        return self._tracker

    def get_data(self, key: K, *, force_refresh: bool = False) -> asyncio.Future[T]:
        """Start a fetch for ``key`` and return its pending result.

        A cache hit returns an already-resolved future.  Must be called
        with a running event loop.

        """
        self._tracker.cancel(key, "superseded")

        if not force_refresh and key in self._cache:
            value: Any = self._cache.get(key)
            self._channels.channel_for(key).publish(value)
            self._record(key, "hit")
            future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
            future.set_result(value)
            return future

        op = self._tracker.start(key, self._fetcher)
        pending = asyncio.ensure_future(self._settle(key, op))
        op.retrieve_when_stale(pending)
        return pending

    async def _settle(self, key: K, op: Operation) -> T:
        try:
            value = await self._resolve(key, op)
            self._cache.set(key, value)
            self._channels.channel_for(key).publish(value)
            self._record(key, "fetched", op)
            return value
        except OperationCancelledError:
            self._record(key, "cancelled", op)
            raise
        except Exception as exc:
            if not self._tracker.is_current(key, op):
                self._record(key, "cancelled", op)
                raise OperationCancelledError(
                    key, "fetch", op.cancel_reason or "superseded"
                ) from exc
            self._channels.channel_for(key).publish_error(exc)
            outcome: FetchOutcome = "filtered" if isinstance(exc, DataFilteredError) else "failed"
            self._record(key, outcome, op, exc)
            raise
        finally:
            self._tracker.release(key, op)

    async def _resolve(self, key: K, op: Operation) -> T:
        """Await the fetcher and filter its result, checking the slot at each resume."""
        try:
            raw = await op.task
        except asyncio.CancelledError:
            if op.cancel_reason is not None:
                raise OperationCancelledError(key, "fetch", op.cancel_reason) from None
            raise
        self._ensure_current(key, op)
        value = await apply_filter(key, raw, self._fetch_filter)
        self._ensure_current(key, op)
        return value

    def _ensure_current(self, key: K, op: Operation) -> None:
        if not self._tracker.is_current(key, op):
            raise OperationCancelledError(key, "fetch", op.cancel_reason or "superseded")

    def _record(
        self,
        key: K,
        outcome: FetchOutcome,
        op: Operation | None = None,
        error: BaseException | None = None,
    ) -> None:
        if self._collector is None:
            return
        duration_ms = op.elapsed_ms if op is not None else 0.0
        self._collector.record_fetch(key, outcome, duration_ms=duration_ms, error=error)
