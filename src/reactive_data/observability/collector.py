"""Cache collector — records manager activity into an event log.

The manager reports every settled fetch and update, every cache clear
and its own disposal.  With ``verbose=True`` the collector also prints a
one-line summary to stderr for failures and rollbacks.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

import sys

from reactive_data.observability.events import (
    CacheCleared,
    FetchEvent,
    FetchOutcome,
    ManagerDisposed,
    UpdateEvent,
    UpdateOutcome,
    now_ns,
)
from reactive_data.observability.log import EventLog

# Outcomes worth a line on stderr in verbose mode
_NOISY_OUTCOMES = frozenset({"failed", "filtered", "rolled_back"})


class CacheCollector:
    """Event collector for a ``ReactiveDataManager``.

    Args:
        log: The EventLog to store events in.
        verbose: Print failures and rollbacks to stderr.

    """

    __slots__ = ("_log", "_verbose")

    def __init__(self, log: EventLog | None = None, *, verbose: bool = False) -> None:
        self._log = log if log is not None else EventLog()
        self._verbose = verbose

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    @property
    def verbose(self) -> bool:
        return self._verbose

    # ----- Operations -----

    def record_fetch(
        self,
        key: object,
        outcome: FetchOutcome,
        *,
        duration_ms: float = 0.0,
        error: BaseException | None = None,
    ) -> None:
        """Record a settled ``get_data`` call."""
        event = FetchEvent(
            key=repr(key),
            outcome=outcome,
            duration_ms=duration_ms,
            timestamp_ns=now_ns(),
        )
        self._log.append(event)
        if self._verbose and outcome in _NOISY_OUTCOMES:
            self._print_failure("fetch", event.key, outcome, duration_ms, error)

    def record_update(
        self,
        key: object,
        outcome: UpdateOutcome,
        *,
        duration_ms: float = 0.0,
        error: BaseException | None = None,
    ) -> None:
        """Record a settled ``update_data`` call."""
        event = UpdateEvent(
            key=repr(key),
            outcome=outcome,
            duration_ms=duration_ms,
            timestamp_ns=now_ns(),
        )
        self._log.append(event)
        if self._verbose and outcome in _NOISY_OUTCOMES:
            self._print_failure("update", event.key, outcome, duration_ms, error)

    # ----- Lifecycle -----

    def record_clear(self, *, entries_cleared: int = 0, channels_notified: int = 0) -> None:
        """Record a ``clear_cache`` call."""
        self._log.append(
            CacheCleared(
                entries_cleared=entries_cleared,
                channels_notified=channels_notified,
                timestamp_ns=now_ns(),
            )
        )

    def record_dispose(self, *, operations_cancelled: int = 0, channels_closed: int = 0) -> None:
        """Record manager disposal."""
        self._log.append(
            ManagerDisposed(
                operations_cancelled=operations_cancelled,
                channels_closed=channels_closed,
                timestamp_ns=now_ns(),
            )
        )

    def _print_failure(
        self,
        kind: str,
        key: str,
        outcome: str,
        duration_ms: float,
        error: BaseException | None,
    ) -> None:
        """Print a one-line failure summary to stderr."""
        detail = f": {type(error).__name__}: {error}" if error is not None else ""
        print(f"  [{duration_ms:.0f}ms] {kind} {key} {outcome}{detail}", file=sys.stderr)
