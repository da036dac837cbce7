"""reactive_data error hierarchy.

All reactive_data-specific errors inherit from ReactiveDataError for easy catching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reactive_data._types import CancelReason, OperationKind


class ReactiveDataError(Exception):
    """Base error for all reactive_data operations."""


class ConfigError(ReactiveDataError):
    """Invalid or missing configuration."""


class DataFilteredError(ReactiveDataError):
    """A fetch result or update confirmation was rejected by a filter."""

    def __init__(self, key: object) -> None:
        super().__init__(f"data for key {key!r} was rejected by filter")
        self.key = key


class OptimisticUpdateError(ReactiveDataError):
    """The updater failed; the optimistic write was rolled back.

    The updater's own exception is kept on ``cause`` (and chained as
    ``__cause__``).
    """

    def __init__(self, key: object, cause: BaseException) -> None:
        super().__init__(f"update for key {key!r} failed and was rolled back: {cause}")
        self.key = key
        self.cause = cause


class OperationCancelledError(ReactiveDataError):
    """An in-flight fetch or update was discarded before it could apply.

    Raised to the caller whose operation lost its slot, either to a newer
    operation of the same kind for the same key or to ``dispose()``.
    """

    def __init__(self, key: object, kind: OperationKind, reason: CancelReason) -> None:
        super().__init__(f"{kind} for key {key!r} was {reason}")
        self.key = key
        self.kind = kind
        self.reason = reason
