"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-scoped lazy parallel task loading.

Rendering units register an async producer under a stable task id and later
await its result. All producers discovered during one request run as a single
concurrent batch instead of one waterfall step per nesting level.

Quick start::

    from autoload import AutoLoadMiddleware, get_task_data, register

    app.add_middleware(AutoLoadMiddleware)

    async def render_post(request):
        register(__name__, load_post)
        post = await get_task_data(request, __name__)
"""

from .errors import AutoLoadConfigError, AutoLoadError, BatchNotSettledError, ScopeError
from .helpers import current_orchestrator, define_task, get_task_data
from .metrics import NoOpTaskMetrics, PrometheusTaskMetrics, TaskMetrics
from .middleware import AutoLoadMiddleware
from .runtime import (
    BatchState,
    LazyTaskExecutor,
    PromiseDedupe,
    RequestScope,
    RequestTaskResult,
    RouteParams,
    TaskContext,
    TaskProducer,
    create_task_context,
    create_task_executor,
    current_registry,
    current_scope,
    register,
    request_scope,
    run_all_tasks_for_request,
    run_scoped,
)
from .settings import AutoLoadSettings

__all__ = [
    "AutoLoadError",
    "AutoLoadConfigError",
    "BatchNotSettledError",
    "ScopeError",
    "AutoLoadSettings",
    "TaskMetrics",
    "NoOpTaskMetrics",
    "PrometheusTaskMetrics",
    "AutoLoadMiddleware",
    "define_task",
    "get_task_data",
    "current_orchestrator",
    "BatchState",
    "LazyTaskExecutor",
    "PromiseDedupe",
    "RequestScope",
    "RequestTaskResult",
    "RouteParams",
    "TaskContext",
    "TaskProducer",
    "create_task_context",
    "create_task_executor",
    "current_registry",
    "current_scope",
    "register",
    "request_scope",
    "run_all_tasks_for_request",
    "run_scoped",
]
