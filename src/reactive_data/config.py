"""reactive_data configuration.

ManagerConfig bundles the collaborators and observability settings of a
manager, frozen after creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from reactive_data._errors import ConfigError


@dataclass(frozen=True, slots=True)
class ManagerConfig:
    """Configuration for a ReactiveDataManager.

    Attributes:
        fetcher: ``(key) -> value`` collaborator, sync or async.  Required.
        updater: ``(key, value) -> result`` collaborator.  Without one,
            ``update_data`` only writes locally.
        fetch_filter: Filter applied to every fetch result.
        update_filter: Filter applied to update confirmations.  Falls back
            to ``fetch_filter`` when unset.
        collect_events: Record operations into an event log.
        max_events: Size of the event log ring buffer.
        verbose: Print failures and rollbacks to stderr (needs
            ``collect_events``).

    """

    fetcher: Any
    updater: Any = None
    fetch_filter: Any = None
    update_filter: Any = None
    collect_events: bool = False
    max_events: int = 10_000
    verbose: bool = False

    def __post_init__(self) -> None:
        if not callable(self.fetcher):
            msg = f"fetcher must be callable, got {self.fetcher!r}"
            raise ConfigError(msg)
        for name in ("updater", "fetch_filter", "update_filter"):
            value = getattr(self, name)
            if value is not None and not callable(value):
                msg = f"{name} must be callable or None, got {value!r}"
                raise ConfigError(msg)
        if self.max_events <= 0:
            msg = f"max_events must be positive, got {self.max_events}"
            raise ConfigError(msg)
