"""
Data-first callback delivery: `callback(result, error)`.

Exactly one of `result` / `error` is meaningful per call. Callbacks may be
plain functions or coroutine functions; awaitable return values are awaited.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

RecordCallback = Callable[[Any, Optional[BaseException]], Any]


async def deliver(callback: Optional[RecordCallback], result: Any, error: Optional[BaseException]) -> None:
    if callback is None:
        return
    outcome = callback(result, error)
    if inspect.isawaitable(outcome):
        await outcome
