"""Operation tracker — one in-flight operation per key and kind.

Each tracker owns one slot per key.  Starting an operation for a key
cancels the operation already in that slot (supersede), then registers
the new one.  The settling side must ask ``is_current()`` before applying
any effect: cancelling the collaborator's task is best-effort (it may
already have finished), so the token check is what actually discards a
stale result.

Slots are released by their owner only.  A superseded operation calling
``release()`` leaves the newer operation's slot alone.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from reactive_data.observability.events import now_ns

if TYPE_CHECKING:
    from collections.abc import Callable

    from reactive_data._types import CancelReason, OperationKind


async def _invoke(func: Callable[..., Any], *args: Any) -> Any:
    """Call a collaborator that may be sync or async."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(slots=True, eq=False)
class Operation:
    """A tracked call to the fetch or update collaborator.

    Attributes:
        key: Key the operation belongs to.
        kind: Slot the operation occupies.
        token: Generation number, unique per tracker.
        task: Task running the collaborator call.
        started_ns: Monotonic start timestamp.
        cancel_reason: Set once the operation lost its slot.

    """

    key: Any
    kind: OperationKind
    token: int
    task: asyncio.Task[Any]
    started_ns: int = field(default_factory=now_ns)
    cancel_reason: CancelReason | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_reason is not None

    @property
    def elapsed_ms(self) -> float:
        return (now_ns() - self.started_ns) / 1_000_000

    def cancel(self, reason: CancelReason) -> None:
        """Mark the operation stale and stop its task if still running."""
        if self.cancel_reason is None:
            self.cancel_reason = reason
        self.task.cancel()

    def retrieve_when_stale(self, future: asyncio.Future[Any]) -> None:
        """Retrieve the rejection of ``future`` once this operation went stale.

        Superseded and disposed callers are often never awaited; their
        ``OperationCancelledError`` must not reach the loop's exception handler.

        """
        future.add_done_callback(self._retrieve_if_stale)

    def _retrieve_if_stale(self, future: asyncio.Future[Any]) -> None:
        if self.cancelled and not future.cancelled():
            future.exception()


class OperationTracker[K]:
    """Tracks at most one in-flight operation per key for a single kind.

    Args:
        kind: ``"fetch"`` or ``"update"``.

    """

    __slots__ = ("_kind", "_slots", "_tokens")

    def __init__(self, kind: OperationKind) -> None:
        self._kind: OperationKind = kind
        self._slots: dict[K, Operation] = {}
        self._tokens = itertools.count(1)

    @property
    def kind(self) -> OperationKind:
        return self._kind

    def start(self, key: K, func: Callable[..., Any], *args: Any) -> Operation:
        """Supersede the current slot holder and run ``func(key, *args)``.

        Must be called with a running event loop.

        """
        self.cancel(key, "superseded")
        task = asyncio.ensure_future(_invoke(func, key, *args))
        op = Operation(key=key, kind=self._kind, token=next(self._tokens), task=task)
        self._slots[key] = op
        return op

    def current(self, key: K) -> Operation | None:
        return self._slots.get(key)

    def is_current(self, key: K, op: Operation) -> bool:
        """True while ``op`` still owns the slot for ``key``."""
        held = self._slots.get(key)
        return held is not None and held.token == op.token and not op.cancelled

    def release(self, key: K, op: Operation) -> bool:
        """Clear the slot if ``op`` still owns it.  Returns True if cleared."""
        held = self._slots.get(key)
        if held is not None and held.token == op.token:
            del self._slots[key]
            return True
        return False

    def cancel(self, key: K, reason: CancelReason = "superseded") -> bool:
        """Cancel and discard the operation for ``key``, if any."""
        op = self._slots.pop(key, None)
        if op is None:
            return False
        op.cancel(reason)
        return True

    def cancel_all(self, reason: CancelReason = "disposed") -> int:
        """Cancel every tracked operation and empty the slot map."""
        ops = tuple(self._slots.values())
        self._slots.clear()
        for op in ops:
            op.cancel(reason)
        return len(ops)

    def keys(self) -> frozenset[K]:
        return frozenset(self._slots)

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
