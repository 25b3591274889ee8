"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Consumer helpers used by rendering units.
"""

from __future__ import annotations

from typing import Any

from .runtime.orchestrator import LazyTaskExecutor
from .runtime.types import TaskProducer


def define_task(fn: TaskProducer) -> TaskProducer:
    """
    Declare a task producer.

    Purely a marker for readers and static tooling; the function is returned
    unchanged::

        @define_task
        async def task(ctx):
            return await ctx.dedupe("post", lambda: fetch_post(ctx.params["id"]))
    """
    return fn


def current_orchestrator(request: Any, *, state_key: str = "autoload") -> LazyTaskExecutor | None:
    """Return the executor attached to `request.state`, if any."""
    state = getattr(request, "state", None)
    if state is None:
        return None
    executor = getattr(state, state_key, None)
    if isinstance(executor, LazyTaskExecutor):
        return executor
    return None


async def get_task_data(
    request: Any,
    task_id: str | None,
    *,
    state_key: str = "autoload",
) -> Any:
    """
    Await the result of the task registered under `task_id` for this request.

    Resolves to ``None`` when the request carries no executor (for example a
    path skipped by the middleware) or when no task id is given.
    """
    executor = current_orchestrator(request, state_key=state_key)
    if executor is None or not task_id:
        return None
    return await executor.get_data(task_id)
