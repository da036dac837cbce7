"""User directory demo — prefetch, live stream, optimistic rename, rollback.

Simulates a slow user API.  Run with::

    python examples/user-directory/main.py

"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, replace

from reactive_data import MISS, OptimisticUpdateError, ReactiveDataManager
from reactive_data.observability import CacheCollector, compute_latency_stats


@dataclass(frozen=True, slots=True)
class User:
    id: int
    name: str
    age: int


async def fetch_user(user_id: int) -> User:
    await asyncio.sleep(random.uniform(0.05, 0.2))
    return User(id=user_id, name=f"User {user_id}", age=20 + user_id)


async def save_user(user_id: int, user: User) -> User:
    await asyncio.sleep(0.1)
    if not user.name.strip():
        msg = "name must not be empty"
        raise ValueError(msg)
    return user


async def watch(manager: ReactiveDataManager[int, User], user_id: int) -> None:
    async with manager.get_stream(user_id) as stream:
        while True:
            try:
                async for user in stream:
                    label = "<no value>" if user is MISS else user
                    print(f"  stream[{user_id}] -> {label}")
                return
            except OptimisticUpdateError as exc:
                print(f"  stream[{user_id}] !! {exc}")


async def main() -> None:
    collector = CacheCollector(verbose=True)
    manager: ReactiveDataManager[int, User] = ReactiveDataManager(
        fetch_user, updater=save_user, collector=collector
    )
    watcher = asyncio.create_task(watch(manager, 7))

    # Prefetch everything; keys load independently.
    await asyncio.gather(*(manager.get_data(user_id) for user_id in range(20)))
    print(f"cached: {len(manager.cached_keys())} users")

    # Served from the cache, no second request
    user = await manager.get_data(7)

    renamed = manager.update_data(7, replace(user, name="Ada"))
    print(f"optimistic: {manager.get_current_value(7)}")
    await renamed

    broken = manager.update_data(7, replace(user, name=" "))
    try:
        await broken
    except OptimisticUpdateError:
        print(f"rolled back: {manager.get_current_value(7)}")

    print("fetch latency:", compute_latency_stats(collector.log))
    manager.dispose()
    await watcher


if __name__ == "__main__":
    asyncio.run(main())
