"""Shared test fixtures for reactive_data."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest


class ControlledCall:
    """A collaborator whose calls stay pending until the test settles them.

    Each call records its arguments and waits on its own future.  Calls
    are only registered once the event loop has run the collaborator task,
    so tests ``await drain()`` before resolving.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.futures: list[asyncio.Future[Any]] = []

    async def __call__(self, *args: Any) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.calls.append(args)
        self.futures.append(future)
        return await future

    def resolve(self, index: int, value: Any) -> None:
        self.futures[index].set_result(value)

    def fail(self, index: int, error: BaseException) -> None:
        self.futures[index].set_exception(error)


async def drain(rounds: int = 5) -> None:
    """Let pending tasks run a few steps."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def fetch_prefixed(key: str) -> str:
    return f"fetched_{key}"


async def update_identity(key: str, value: str) -> str:
    return value


@pytest.fixture
def controlled() -> ControlledCall:
    return ControlledCall()
