"""Job outcomes — one vocabulary for sync returns, awaitables and raises.

WHY
───
A job may return a plain value, return something awaitable, or raise
before returning anything.  The runner should not care which: every
invocation is funnelled through :func:`invoke`, and every finished
future through :func:`settle`, so the scheduling loop only ever sees
three shapes.

ARCHITECTURE
────────────
::

    invoke(job)
      ├── job() returns value        ─ Value(value)
      ├── job() returns awaitable    ─ Pending(asyncio.Future)
      └── job() raises Exception     ─ JobFailure(exc)

    settle(future)                   (future must be done)
      ├── result                     ─ Value(result)
      ├── exception                  ─ JobFailure(exc)
      └── cancelled                  ─ JobFailure(CancelledError())

Example::

    outcome = invoke(lambda: 42)
    assert outcome == Value(42)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

Job = Callable[[], Any]


@dataclass(frozen=True, slots=True)
class Value:
    """The job produced ``value`` without suspending."""

    value: Any


@dataclass(frozen=True, slots=True)
class Pending:
    """The job handed back a future that has not settled yet."""

    future: asyncio.Future


@dataclass(frozen=True, slots=True)
class JobFailure:
    """A job failed, either by raising or through its future.

    ``error`` is the exception exactly as the job produced it.  ``index``
    is the job's slot in the input sequence once the runner knows it.
    """

    error: BaseException
    index: int | None = None

    def at(self, index: int) -> JobFailure:
        """Return a copy pinned to slot ``index``."""
        return JobFailure(self.error, index)


Outcome = Union[Value, Pending, JobFailure]


def as_future(awaitable: Awaitable[Any] | concurrent.futures.Future) -> asyncio.Future:
    """Normalise an awaitable to an ``asyncio.Future`` on the running loop.

    Coroutines are scheduled as tasks.  ``concurrent.futures.Future``
    objects are wrapped so their completion is delivered on the loop
    thread rather than on whichever worker finished them.
    """
    if isinstance(awaitable, concurrent.futures.Future):
        return asyncio.wrap_future(awaitable)
    return asyncio.ensure_future(awaitable)


def invoke(job: Job) -> Outcome:
    """Call ``job`` once and classify what happened."""
    try:
        result = job()
        if inspect.isawaitable(result) or isinstance(result, concurrent.futures.Future):
            return Pending(as_future(result))
    except Exception as e:
        return JobFailure(e)
    return Value(result)


def settle(future: asyncio.Future) -> Value | JobFailure:
    """Convert a finished future into a :class:`Value` or :class:`JobFailure`.

    Always retrieves the exception, so asyncio does not warn about it
    later even when nobody is interested in the outcome any more.
    """
    if future.cancelled():
        return JobFailure(asyncio.CancelledError())
    error = future.exception()
    if error is not None:
        return JobFailure(error)
    return Value(future.result())


__all__ = [
    "Job",
    "JobFailure",
    "Outcome",
    "Pending",
    "Value",
    "as_future",
    "invoke",
    "settle",
]
