"""reactive_data — a per-key reactive cache for asyncio.

Fetches, caches, streams and optimistically updates values by key.  Each
key gets a live subscription that replays its latest value, plus a
synchronous "latest known value" accessor.

Quick start::

    from reactive_data import ReactiveDataManager

    manager = ReactiveDataManager(fetch_user, updater=save_user)

    user = await manager.get_data(42)
    await manager.update_data(42, user.renamed("Ada"))

    async with manager.get_stream(42) as stream:
        async for value in stream:
            ...

The host application supplies the collaborators: a fetcher
``(key) -> value`` and, optionally, an updater ``(key, value) -> result``
and result filters.  Retries, timeouts and transport belong to them.

"""

from reactive_data._errors import (
    ConfigError,
    DataFilteredError,
    OperationCancelledError,
    OptimisticUpdateError,
    ReactiveDataError,
)
from reactive_data._types import MISS, Miss

__version__ = "0.1.0-dev"
__all__ = [
    "MISS",
    "ConfigError",
    "DataFilteredError",
    "ManagerConfig",
    "Miss",
    "OperationCancelledError",
    "OptimisticUpdateError",
    "ReactiveDataError",
    "ReactiveDataManager",
    "Subscription",
    "__version__",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import reactive_data`` fast while providing a clean top-level API.
    """
    if name == "ReactiveDataManager":
        from reactive_data.manager import ReactiveDataManager

        return ReactiveDataManager

    if name == "ManagerConfig":
        from reactive_data.config import ManagerConfig

        return ManagerConfig

    if name == "load_config":
        from reactive_data.config_loader import load_config

        return load_config

    if name == "Subscription":
        from reactive_data.reactive.channel import Subscription

        return Subscription

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
