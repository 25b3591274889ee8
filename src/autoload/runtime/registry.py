"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-scoped task registry.

Each inbound request runs inside its own ``RequestScope``, carried by a
``ContextVar``. ``asyncio`` copies the current context into every task it
creates, so registrations made anywhere below ``run_scoped`` land in that
request's scope and never in a concurrent request's scope.
"""

from __future__ import annotations

import contextvars
import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ..errors import ScopeError
from ..metrics import REGISTRATIONS_DROPPED_TOTAL, NoOpTaskMetrics, TaskMetrics
from .dedupe import PromiseDedupe
from .types import TaskProducer

logger = logging.getLogger("autoload.registry")


@dataclass(slots=True)
class RequestScope:
    """Per-request arena holding the registry, outcome stores and dedupe cache."""

    registry: dict[str, TaskProducer] = field(default_factory=dict)
    results: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)
    dedupe: PromiseDedupe = field(default_factory=PromiseDedupe)
    metrics: TaskMetrics = field(default_factory=NoOpTaskMetrics)


_ACTIVE_SCOPE: contextvars.ContextVar[RequestScope | None] = contextvars.ContextVar(
    "autoload_request_scope", default=None
)


@contextmanager
def request_scope(*, metrics: TaskMetrics | None = None) -> Iterator[RequestScope]:
    """Activate a fresh, empty scope for the enclosed block."""
    scope = RequestScope(metrics=metrics or NoOpTaskMetrics())
    token = _ACTIVE_SCOPE.set(scope)
    try:
        yield scope
    finally:
        _ACTIVE_SCOPE.reset(token)


async def run_scoped(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Run `fn` inside a new request scope and return its result.

    `fn` may be a plain callable or return an awaitable; awaitables are awaited
    while the scope is still active.
    """
    if not callable(fn):
        raise ScopeError(f"run_scoped expects a callable, got {type(fn).__name__}")

    with request_scope():
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


def current_scope() -> RequestScope | None:
    """Return the active request scope, if any."""
    return _ACTIVE_SCOPE.get()


def current_registry() -> dict[str, TaskProducer]:
    """Return the active registry, or an empty mapping outside a scope."""
    scope = _ACTIVE_SCOPE.get()
    if scope is None:
        return {}
    return scope.registry


def register(task_id: str, producer: TaskProducer) -> bool:
    """
    Register `producer` under `task_id` in the active request scope.

    Returns ``True`` when the producer was stored. Outside a scope the call is
    dropped; for an id that is already registered the first producer is kept.
    Neither case is an error.
    """
    scope = _ACTIVE_SCOPE.get()
    if scope is None:
        logger.debug("No active request scope, dropping registration for %s", task_id)
        return False

    if task_id in scope.registry:
        logger.debug("Task already registered for %s, skipping", task_id)
        scope.metrics.incr(REGISTRATIONS_DROPPED_TOTAL, tags={"reason": "duplicate"})
        return False

    scope.registry[task_id] = producer
    return True
