"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/__init__.py.
"""

from .context import RouteParams, TaskContext, create_task_context
from .dedupe import PromiseDedupe
from .orchestrator import (
    LazyTaskExecutor,
    RequestTaskResult,
    create_task_executor,
    run_all_tasks_for_request,
)
from .registry import (
    RequestScope,
    current_registry,
    current_scope,
    register,
    request_scope,
    run_scoped,
)
from .types import BatchState, TaskProducer

__all__ = [
    "RouteParams",
    "TaskContext",
    "create_task_context",
    "PromiseDedupe",
    "LazyTaskExecutor",
    "RequestTaskResult",
    "create_task_executor",
    "run_all_tasks_for_request",
    "RequestScope",
    "current_registry",
    "current_scope",
    "register",
    "request_scope",
    "run_scoped",
    "BatchState",
    "TaskProducer",
]
