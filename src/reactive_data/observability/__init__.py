"""Cache observability — event model, event log and collector.

Records what a ``ReactiveDataManager`` does with each key:
- **Fetches**: cache hits, fetches, failures, filter rejections, supersedes
- **Updates**: confirmations, local-only writes, rollbacks
- **Lifecycle**: cache clears and disposal

All events are frozen dataclasses with nanosecond timestamps.

Quick Start:
    >>> from reactive_data.observability import CacheCollector, EventLog
    >>> log = EventLog()
    >>> collector = CacheCollector(log)
    >>> # manager = ReactiveDataManager(fetch_user, collector=collector)
    >>> # log.query(event_type=FetchEvent, key=42)

"""

from reactive_data.observability.collector import CacheCollector
from reactive_data.observability.events import (
    CacheCleared,
    CacheEvent,
    FetchEvent,
    ManagerDisposed,
    UpdateEvent,
    now_ns,
)
from reactive_data.observability.latency import compute_latency_stats
from reactive_data.observability.log import EventLog

__all__ = [
    "CacheCleared",
    "CacheCollector",
    "CacheEvent",
    "EventLog",
    "FetchEvent",
    "ManagerDisposed",
    "UpdateEvent",
    "compute_latency_stats",
    "now_ns",
]
