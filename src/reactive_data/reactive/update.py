"""Update pipeline — optimistic write -> updater -> rollback on failure.

Orchestrates ``update_data``:
    1. Supersede any in-flight update for the key
    2. Snapshot the cached value, write the new one and publish it at once
    3. Call the updater in the key's update slot (no updater: done, ``None``)
    4. Updater failure: restore the snapshot (or drop the entry), publish
       it, and reject with ``OptimisticUpdateError``
    5. Updater success: filter the confirmation and resolve with it

Every failure is also published to the key's channel.  The resolved value
is the updater's confirmation payload, not necessarily the cached value;
read ``get_current_value()`` for that.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from reactive_data._errors import (
    DataFilteredError,
    OperationCancelledError,
    OptimisticUpdateError,
)
from reactive_data._types import MISS, Miss
from reactive_data.reactive.filters import apply_filter
from reactive_data.reactive.tracker import Operation, OperationTracker

if TYPE_CHECKING:
    from reactive_data._types import UpdateFilter, Updater
    from reactive_data.observability.collector import CacheCollector
    from reactive_data.observability.events import UpdateOutcome
    from reactive_data.reactive.channel import KeyedChannelRegistry
    from reactive_data.store import Cache


class UpdatePipeline[K, T]:
    """Runs optimistic updates for a manager, one in-flight update per key.

    Args:
        cache: Shared cache.
        channels: Shared channel registry.
        updater: Optional ``(key, value) -> result`` collaborator.
        update_filter: Optional filter for the updater's confirmation.
        collector: Optional event collector.

    """

    def __init__(
        self,
        cache: Cache[K, T],
        channels: KeyedChannelRegistry[K, T],
        updater: Updater[K, T] | None = None,
        *,
        update_filter: UpdateFilter[K] | None = None,
        collector: CacheCollector | None = None,
    ) -> None:
        self._cache = cache
        self._channels = channels
        self._updater = updater
        self._update_filter = update_filter
        self._collector = collector
        self._tracker: OperationTracker[K] = OperationTracker("update")

    @property
    def tracker(self) -> OperationTracker[K]:
        return self._tracker

    def update_data(self, key: K, value: T) -> asyncio.Future[Any]:
        """Apply ``value`` locally and start confirming it remotely.

        The cache and channel reflect ``value`` as soon as this returns.
        Must be called with a running event loop.

        """
        self._tracker.cancel(key, "superseded")

        old_value = self._cache.get(key)
        self._cache.set(key, value)
        self._channels.channel_for(key).publish(value)

        if self._updater is None:
            self._record(key, "local")
            future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            future.set_result(None)
            return future

        op = self._tracker.start(key, self._updater, value)
        pending = asyncio.ensure_future(self._settle(key, op, old_value))
        op.retrieve_when_stale(pending)
        return pending

    async def _settle(self, key: K, op: Operation, old_value: T | Miss) -> Any:
        try:
            result = await self._confirm(key, op, old_value)
            self._record(key, "confirmed", op)
            return result
        except OperationCancelledError:
            self._record(key, "cancelled", op)
            raise
        except Exception as exc:
            if not self._tracker.is_current(key, op):
                self._record(key, "cancelled", op)
                raise OperationCancelledError(
                    key, "update", op.cancel_reason or "superseded"
                ) from exc
            self._channels.channel_for(key).publish_error(exc)
            self._record(key, self._failure_outcome(exc), op, exc)
            raise
        finally:
            self._tracker.release(key, op)

    async def _confirm(self, key: K, op: Operation, old_value: T | Miss) -> Any:
        """Await the updater, rolling back if it fails, then filter its result."""
        try:
            raw = await op.task
        except asyncio.CancelledError:
            if op.cancel_reason is not None:
                raise OperationCancelledError(key, "update", op.cancel_reason) from None
            raise
        except Exception as exc:
            self._ensure_current(key, op)
            self._roll_back(key, old_value)
            raise OptimisticUpdateError(key, exc) from exc
        self._ensure_current(key, op)
        result = await apply_filter(key, raw, self._update_filter)
        self._ensure_current(key, op)
        return result

    def _roll_back(self, key: K, old_value: T | Miss) -> None:
        if old_value is MISS:
            self._cache.remove(key)
        else:
            self._cache.set(key, old_value)
        self._channels.channel_for(key).publish(old_value)

    def _ensure_current(self, key: K, op: Operation) -> None:
        if not self._tracker.is_current(key, op):
            raise OperationCancelledError(key, "update", op.cancel_reason or "superseded")

    @staticmethod
    def _failure_outcome(exc: Exception) -> UpdateOutcome:
        if isinstance(exc, OptimisticUpdateError):
            return "rolled_back"
        if isinstance(exc, DataFilteredError):
            return "filtered"
        return "failed"

    def _record(
        self,
        key: K,
        outcome: UpdateOutcome,
        op: Operation | None = None,
        error: BaseException | None = None,
    ) -> None:
        if self._collector is None:
            return
        duration_ms = op.elapsed_ms if op is not None else 0.0
        self._collector.record_update(key, outcome, duration_ms=duration_ms, error=error)
