"""Reactive layer — per-key channels and the fetch/update pipelines.

Connects collaborator results to subscribers through the cache, the
operation tracker and the keyed channel registry.
"""

from reactive_data.reactive.channel import Channel, KeyedChannelRegistry, Subscription
from reactive_data.reactive.fetch import FetchPipeline
from reactive_data.reactive.tracker import Operation, OperationTracker
from reactive_data.reactive.update import UpdatePipeline

__all__ = [
    "Channel",
    "FetchPipeline",
    "KeyedChannelRegistry",
    "Operation",
    "OperationTracker",
    "Subscription",
    "UpdatePipeline",
]
