"""Runner — bounded-concurrency job execution with ordered results.

WHY
───
Callers often hold a list of independent pieces of work (downloads, API
calls, subprocesses) and want them all done, no more than N at a time,
with results lined up against the inputs.  ``asyncio.gather`` has no
limit, and a semaphore around ``gather`` still creates every coroutine
up front and keeps going after something has failed.  The Runner only
calls a job once a slot is free, and stops calling new ones as soon as
any job fails.

ARCHITECTURE
────────────
::

    Runner(concurrency=N)
      └── .run(jobs)
            │
            ▼
          _RunState (fresh per call)
            cursor ─ next job to admit
            in_flight ─ admitted, not yet settled
            results ─ one slot per job
            failure ─ first JobFailure, if any
            │
            ▼
          _admit()  ── while in_flight < N and jobs remain and no failure:
            │            invoke(job) → Value | Pending | JobFailure
            │
            ├── Value / JobFailure ─ _record() immediately
            └── Pending            ─ future.add_done_callback(_on_settled)
                                        └── _record(); _admit()

    Runner.run_all(jobs, concurrency)  ─ Runner(concurrency).run(jobs)

All bookkeeping happens on the event loop thread: synchronous outcomes
inside the admission loop, asynchronous ones in done-callbacks.  Futures
from other threads are bridged with ``asyncio.wrap_future`` before a
callback is attached, so no locks are needed.

FAILURE
───────
The first failure to settle rejects the run with the job's own exception.
Jobs already in flight are not cancelled; they finish in the background
and their outcomes are retrieved and dropped.

Example::

    runner = Runner(concurrency=3)
    pages = await runner.run([lambda u=u: fetch(u) for u in urls])
"""

from __future__ import annotations

import asyncio
import functools
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from jobqueue.logging import LogContext, get_logger
from jobqueue.outcome import Job, JobFailure, Pending, Value, invoke, settle
from jobqueue.settings import DEFAULT_CONCURRENCY, get_settings, is_valid_concurrency

logger = get_logger(__name__)

# Re-raised after ending the run so they still stop the event loop.
_FATAL = (KeyboardInterrupt, SystemExit)


@dataclass
class _RunState:
    """Transient state for a single ``run`` call.

    ``done`` only signals that the run is over; it never carries a job's
    error.  ``pending`` holds admitted futures until they settle, so
    jobs abandoned after a failure stay referenced by their own
    done-callbacks and are collected together with the run.
    """

    jobs: list[Job]
    results: list[Any]
    done: asyncio.Future
    cursor: int = 0
    in_flight: int = 0
    completed: int = 0
    failure: JobFailure | None = None
    pending: set[asyncio.Future] = field(default_factory=set)

    @property
    def halted(self) -> bool:
        """No more admissions: a job failed or the caller stopped waiting."""
        return self.failure is not None or self.done.done()

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.jobs)


class Runner:
    """Runs jobs with at most ``concurrency`` of them in flight.

    Parameters
    ----------
    concurrency : int | None
        Maximum number of jobs in flight.  ``None`` uses
        ``JOBQUEUE_CONCURRENCY`` (default 1).  Anything that is not a
        positive int falls back to 1.
    """

    def __init__(self, concurrency: int | None = None) -> None:
        if concurrency is None:
            concurrency = get_settings().concurrency
        elif not is_valid_concurrency(concurrency):
            logger.warning(
                "runner.invalid_concurrency",
                value=repr(concurrency),
                default=DEFAULT_CONCURRENCY,
            )
            concurrency = DEFAULT_CONCURRENCY
        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        return self._concurrency

    def __repr__(self) -> str:
        return f"Runner(concurrency={self._concurrency})"

    # ── Execution ────────────────────────────────────────────────────

    async def run(self, jobs: Iterable[Job]) -> list[Any]:
        """Run ``jobs`` and return their results in input order.

        Args:
            jobs: Zero-argument callables.  Each may return a value, a
                coroutine or other awaitable, or a
                ``concurrent.futures.Future``.

        Returns:
            One result per job, positioned by the job's input index.

        Raises:
            Exception: the first failing job's exception, unchanged.
        """
        jobs = list(jobs)
        if not jobs:
            return []

        state = _RunState(
            jobs=jobs,
            results=[None] * len(jobs),
            done=asyncio.get_running_loop().create_future(),
        )

        async with LogContext(run_id=uuid.uuid4().hex[:12]):
            logger.debug("runner.start", jobs=len(jobs), concurrency=self._concurrency)
            self._admit(state)
            results = await state.done

        if state.failure is not None:
            # A StopIteration leaves a coroutine as RuntimeError, chained
            # to the original through __cause__.
            raise state.failure.error
        return results

    @classmethod
    async def run_all(cls, jobs: Iterable[Job], concurrency: int | None = None) -> list[Any]:
        """Build a runner with ``concurrency`` and delegate to :meth:`run`."""
        return await cls(concurrency).run(jobs)

    # ── Scheduling ───────────────────────────────────────────────────

    def _admit(self, state: _RunState) -> None:
        while (
            state.in_flight < self._concurrency
            and not state.exhausted
            and not state.halted
        ):
            index = state.cursor
            state.cursor += 1
            state.in_flight += 1

            try:
                outcome = invoke(state.jobs[index])
            except BaseException as e:
                # Also reached from done-callbacks, where nothing would
                # otherwise end the run.
                self._record(state, index, JobFailure(e))
                if isinstance(e, _FATAL):
                    raise
                return

            if isinstance(outcome, Pending):
                future = outcome.future
                state.pending.add(future)
                future.add_done_callback(functools.partial(self._on_settled, state, index))
            else:
                self._record(state, index, outcome)

    def _on_settled(self, state: _RunState, index: int, future: asyncio.Future) -> None:
        state.pending.discard(future)
        self._record(state, index, settle(future))
        self._admit(state)

    def _record(self, state: _RunState, index: int, outcome: Value | JobFailure) -> None:
        state.in_flight -= 1
        if state.halted:
            return

        if isinstance(outcome, JobFailure):
            failure = state.failure = outcome.at(index)
            logger.warning(
                "runner.job_failed",
                index=failure.index,
                error_type=type(failure.error).__name__,
                error=str(failure.error),
                in_flight=state.in_flight,
            )
            if isinstance(failure.error, asyncio.CancelledError):
                state.done.cancel()
            else:
                state.done.set_result(None)
            return

        state.results[index] = outcome.value
        state.completed += 1
        if state.completed == len(state.jobs):
            logger.debug("runner.complete", jobs=len(state.jobs))
            state.done.set_result(state.results)


__all__ = ["Runner"]
