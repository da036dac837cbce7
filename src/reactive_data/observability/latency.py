"""Latency statistics over recorded fetch and update events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from reactive_data.observability.events import FetchEvent, UpdateEvent

if TYPE_CHECKING:
    from reactive_data.observability.log import EventLog

# Outcomes that waited on a collaborator.  Cache hits and local-only
# updates settle immediately.
_TIMED_OUTCOMES: dict[type, frozenset[str]] = {
    FetchEvent: frozenset({"fetched", "failed", "filtered", "cancelled"}),
    UpdateEvent: frozenset({"confirmed", "rolled_back", "filtered", "failed", "cancelled"}),
}


def compute_latency_stats(
    log: EventLog,
    *,
    event_type: type[FetchEvent] | type[UpdateEvent] = FetchEvent,
    limit: int = 100,
) -> dict[str, Any]:
    """Compute latency percentiles over the last ``limit`` timed events.

    Returns a dict with p50, p95, p99, min, max and the count of events
    per outcome.

    """
    events = log.query(
        event_type=event_type,
        outcomes=_TIMED_OUTCOMES[event_type],
        limit=limit,
    )
    if not events:
        return {"count": 0}

    durations = sorted(e.duration_ms for e in events)
    count = len(durations)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    outcomes: dict[str, int] = {}
    for e in events:
        outcomes[e.outcome] = outcomes.get(e.outcome, 0) + 1

    return {
        "count": count,
        "duration_ms": {
            "p50": round(percentile(durations, 50), 1),
            "p95": round(percentile(durations, 95), 1),
            "p99": round(percentile(durations, 99), 1),
            "min": round(durations[0], 1),
            "max": round(durations[-1], 1),
        },
        "by_outcome": outcomes,
    }
