"""Shared type definitions for reactive_data."""

from collections.abc import Awaitable, Callable
from typing import Any, Final, Literal, final


@final
class Miss:
    """The "no value" marker, distinct from every value of T (``None`` included).

    There is exactly one instance, ``MISS``.
    """

    __slots__ = ()
    _instance: "Miss | None" = None

    def __new__(cls) -> "Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISS"


MISS: Final = Miss()

# Which slot an in-flight operation occupies
type OperationKind = Literal["fetch", "update"]

# Why an in-flight operation was discarded
type CancelReason = Literal["superseded", "disposed"]

# Collaborators supplied by the host application
type Fetcher[K, T] = Callable[[K], Awaitable[T] | T]
type Updater[K, T] = Callable[[K, T], Awaitable[Any] | Any]
type FetchFilter[K, T] = Callable[[K, T], T | Miss | None]
type UpdateFilter[K] = Callable[[K, Any], Awaitable[Any] | Any]
