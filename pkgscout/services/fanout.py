"""Concurrent fan-out with per-item outcomes.

Every awaitable in a batch runs to completion; one failure never cancels or
hides its siblings.  Callers get one ``Result`` per input, in input order, and
decide explicitly what to do with the failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from result import Err, Ok, Result


async def gather_results[T, E](
    awaitables: Iterable[Awaitable[Result[T, E]]],
) -> list[Result[T, E | Exception]]:
    """Run *awaitables* concurrently and return their outcomes in input order.

    Awaitables may return ``Ok``/``Err`` themselves; an ``Exception`` raised by
    one of them is captured as ``Err(exc)``.  ``BaseException`` (cancellation,
    interpreter exit) is re-raised.
    """
    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)
    results: list[Result[T, E | Exception]] = []
    for outcome in outcomes:
        if isinstance(outcome, Exception):
            results.append(Err(outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(outcome)
    return results


def collect_ok[T, E](
    results: Iterable[Result[T, E]],
    on_error: Callable[[E], None] | None = None,
) -> list[T]:
    """Keep the ``Ok`` values; hand every ``Err`` value to *on_error*."""
    kept: list[T] = []
    for item in results:
        if isinstance(item, Ok):
            kept.append(item.ok_value)
        elif on_error is not None:
            on_error(item.err_value)
    return kept
