"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Lazy batch orchestrator for request-scoped task producers.

Rendering units register producers while the render tree unfolds, so the
complete task set of a request is never known up front. The executor waits
for registrations to go quiet (a fixed number of event-loop ticks without
registry growth), freezes the registered ids as one batch and runs every
producer of that batch concurrently. Outcomes are cached per id; a failure
is only re-raised to callers of the id that failed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import BatchNotSettledError
from ..metrics import (
    BATCHES_TOTAL,
    TASK_FAILURES_TOTAL,
    TASK_RUNS_TOTAL,
    NoOpTaskMetrics,
    TaskMetrics,
)
from ..settings import AutoLoadSettings
from .context import ParamsSource, TaskContext, create_task_context
from .registry import current_registry, current_scope
from .types import BatchState, TaskProducer

logger = logging.getLogger("autoload.orchestrator")


class LazyTaskExecutor:
    """
    Collect task requests during rendering and run them as concurrent batches.

    Guarantees:
    - every registered producer runs at most once per executor
    - producers of one batch start together, none is awaited before all start
    - repeated ``get_data`` calls return the identical cached value
    - a producer failure only reaches callers of that task id
    """

    def __init__(
        self,
        context: TaskContext,
        registry: Mapping[str, TaskProducer],
        *,
        settings: AutoLoadSettings | None = None,
        metrics: TaskMetrics | None = None,
        results: dict[str, Any] | None = None,
        errors: dict[str, BaseException] | None = None,
    ) -> None:
        self._context = context
        self._registry = registry
        self._settings = (settings or AutoLoadSettings()).validate()
        self._metrics: TaskMetrics = metrics or NoOpTaskMetrics()
        self._results: dict[str, Any] = results if results is not None else {}
        self._errors: dict[str, BaseException] = errors if errors is not None else {}
        self._requested: set[str] = set()
        self._started: set[str] = set()
        self._missing_reported: set[str] = set()
        self._batch: asyncio.Task[None] | None = None
        self._state: BatchState = "idle"
        self._cycles = 0

    @property
    def context(self) -> TaskContext:
        return self._context

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def requested(self) -> frozenset[str]:
        return frozenset(self._requested)

    @property
    def cycles(self) -> int:
        """Number of batches started so far."""
        return self._cycles

    async def get_data(self, task_id: str) -> Any:
        """
        Return the result of the producer registered under `task_id`.

        Joins the batch in flight or starts a new one, then answers from the
        result/error stores. Resolves to ``None`` for ids that were never
        registered.
        """
        self._requested.add(task_id)

        while not self._is_settled(task_id):
            batch = self._ensure_batch(task_id)
            # Shielded: a caller giving up must not cancel the shared batch.
            await asyncio.shield(batch)
            if task_id not in self._registry or task_id in self._started:
                break

        if not self._is_settled(task_id) and task_id not in self._registry:
            self._report_missing(task_id)
        return self._read(task_id)

    def execute_all(self) -> None:
        """Eagerly start one batch over every registered id, skipping collection."""
        if self._batch is not None:
            return
        self._requested.update(self._registry)
        self._start_batch(collect=False)

    async def await_all(self) -> None:
        """Wait for the current batch, if one was started."""
        if self._batch is not None:
            await asyncio.shield(self._batch)

    def get_data_sync(self, task_id: str) -> Any:
        """
        Read a settled outcome without awaiting.

        Raises the stored error for failed ids and ``BatchNotSettledError``
        while the batch that may still produce `task_id` is running.
        """
        if not self._is_settled(task_id) and self._batch is not None and not self._batch.done():
            raise BatchNotSettledError(f"Batch for task '{task_id}' has not settled yet")
        return self._read(task_id)

    def results(self) -> dict[str, Any]:
        """Snapshot of the result store."""
        return dict(self._results)

    def _is_settled(self, task_id: str) -> bool:
        return task_id in self._results or task_id in self._errors

    def _read(self, task_id: str) -> Any:
        error = self._errors.get(task_id)
        if error is not None:
            raise error
        return self._results.get(task_id)

    def _ensure_batch(self, task_id: str) -> asyncio.Task[None]:
        batch = self._batch
        if batch is None:
            return self._start_batch()
        if batch.done() and not self._is_settled(task_id):
            logger.debug("Late request for %s, starting a new batch", task_id)
            return self._start_batch()
        return batch

    def _start_batch(self, *, collect: bool = True) -> asyncio.Task[None]:
        self._cycles += 1
        self._state = "collecting" if collect else "stable"
        self._batch = asyncio.create_task(
            self._run_cycle(self._cycles, collect=collect),
            name=f"autoload-batch-{self._cycles}",
        )
        return self._batch

    async def _run_cycle(self, cycle: int, *, collect: bool) -> None:
        if collect:
            frozen = await self._await_stable_registry()
        else:
            frozen = list(self._registry)
        self._state = "stable"

        pending = [
            task_id
            for task_id in frozen
            if task_id not in self._started and not self._is_settled(task_id)
        ]
        logger.debug(
            "Batch %d frozen with %d task(s), %d pending", cycle, len(frozen), len(pending)
        )
        self._metrics.incr(BATCHES_TOTAL)

        self._state = "executing"
        try:
            await asyncio.gather(*(self._execute(task_id) for task_id in pending))
        finally:
            self._state = "settled"

    async def _await_stable_registry(self) -> list[str]:
        threshold = self._settings.stable_ticks
        limit = self._settings.max_collect_ticks
        last_size = len(self._registry)
        stable = 0
        ticks = 0

        while stable < threshold:
            await asyncio.sleep(0)
            ticks += 1
            size = len(self._registry)
            if size == last_size:
                stable += 1
            else:
                stable = 0
                last_size = size
            if limit is not None and ticks >= limit and stable < threshold:
                logger.warning(
                    "Registry still growing after %d ticks, freezing %d task(s)",
                    ticks,
                    size,
                )
                break

        return list(self._registry)

    async def _execute(self, task_id: str) -> None:
        producer = self._registry.get(task_id)
        if producer is None:
            return

        self._started.add(task_id)
        self._metrics.incr(TASK_RUNS_TOTAL)
        try:
            self._results[task_id] = await producer(self._context)
        except Exception as exc:  # noqa: BLE001
            self._fail(task_id, exc)
        except BaseException as exc:
            self._fail(task_id, exc)
            # A CancelledError raised by the producer itself is its outcome;
            # only a cancel request against the running task propagates.
            current = asyncio.current_task()
            if not isinstance(exc, asyncio.CancelledError) or (
                current is not None and current.cancelling()
            ):
                raise

    def _fail(self, task_id: str, exc: BaseException) -> None:
        self._errors[task_id] = exc
        self._metrics.incr(TASK_FAILURES_TOTAL)
        logger.debug("Task %s failed: %r", task_id, exc)

    def _report_missing(self, task_id: str) -> None:
        if task_id in self._missing_reported:
            return
        self._missing_reported.add(task_id)
        logger.warning("No task registered for %s", task_id)


@dataclass(frozen=True, slots=True)
class RequestTaskResult:
    """Outcome of eagerly running every registered producer of a request."""

    context: TaskContext
    data_by_task: dict[str, Any] = field(default_factory=dict)


def create_task_executor(
    *,
    params: ParamsSource,
    request: Any,
    extend: Callable[[], Mapping[str, Any]] | None = None,
    settings: AutoLoadSettings | None = None,
    metrics: TaskMetrics | None = None,
) -> LazyTaskExecutor:
    """
    Create a lazy executor bound to the active request scope.

    No producer runs until the first ``get_data`` call. Outside a scope the
    executor sees an empty registry and resolves every id to ``None``.
    """
    scope = current_scope()
    if scope is None:
        context = create_task_context(params=params, request=request, extend=extend)
        return LazyTaskExecutor(context, {}, settings=settings, metrics=metrics)

    context = create_task_context(
        params=params, request=request, extend=extend, dedupe=scope.dedupe
    )
    return LazyTaskExecutor(
        context,
        scope.registry,
        settings=settings,
        metrics=metrics or scope.metrics,
        results=scope.results,
        errors=scope.errors,
    )


async def run_all_tasks_for_request(
    *,
    params: ParamsSource,
    request: Any,
    extend: Callable[[], Mapping[str, Any]] | None = None,
) -> RequestTaskResult:
    """
    Run every producer registered so far, all at once, and collect the values.

    Unlike ``LazyTaskExecutor`` this does not wait for late registrations and
    lets the first producer failure propagate.
    """
    context = create_task_context(params=params, request=request, extend=extend)
    entries = list(current_registry().items())

    values = await asyncio.gather(*(producer(context) for _, producer in entries))
    data_by_task = {task_id: value for (task_id, _), value in zip(entries, values)}
    return RequestTaskResult(context=context, data_by_task=data_by_task)
