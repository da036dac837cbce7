"""Result filtering shared by the fetch and update pipelines.

A filter receives ``(key, result)`` and answers with:

- ``MISS``: reject the result (``DataFilteredError``)
- ``None``: keep the result as is
- anything else: use that instead of the result

A collaborator that resolves to ``MISS`` itself is rejected the same way,
filter or not.  Filters may be plain or async functions.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from reactive_data._errors import DataFilteredError
from reactive_data._types import MISS

if TYPE_CHECKING:
    from collections.abc import Callable


async def apply_filter(key: Any, result: Any, filter_func: Callable[..., Any] | None) -> Any:
    """Run ``filter_func`` over a collaborator result.

    Raises:
        DataFilteredError: The result (or the filter's answer) is ``MISS``.

    """
    if result is MISS:
        raise DataFilteredError(key)
    if filter_func is None:
        return result

    filtered = filter_func(key, result)
    if inspect.isawaitable(filtered):
        filtered = await filtered

    if filtered is MISS:
        raise DataFilteredError(key)
    if filtered is None:
        return result
    return filtered
