"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

ASGI middleware opening one task scope per inbound HTTP request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from .metrics import TaskMetrics
from .runtime.orchestrator import create_task_executor
from .runtime.registry import request_scope
from .settings import AutoLoadSettings

logger = logging.getLogger("autoload.middleware")

ContextExtender = Callable[[Request], Mapping[str, Any]]


class AutoLoadMiddleware:
    """
    Wrap each HTTP request in its own registry scope and attach an executor.

    Rendering code reaches the executor through ``request.state.<state_key>``
    (see ``autoload.helpers.get_task_data``). ``ctx.params`` reads
    ``scope["path_params"]`` lazily, so producers see the parameters the router
    fills in after this middleware has run.

    Usage::

        app = FastAPI()
        app.add_middleware(AutoLoadMiddleware, settings=AutoLoadSettings.from_env())
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        settings: AutoLoadSettings | None = None,
        metrics: TaskMetrics | None = None,
        extend: ContextExtender | None = None,
    ) -> None:
        self.app = app
        self.settings = (settings or AutoLoadSettings()).validate()
        self.metrics = metrics
        self.extend = extend

    def _skipped(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.settings.skip_path_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self._skipped(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        extend = partial(self.extend, request) if self.extend is not None else None

        with request_scope(metrics=self.metrics):
            executor = create_task_executor(
                params=lambda: request.path_params,
                request=request,
                extend=extend,
                settings=self.settings,
                metrics=self.metrics,
            )
            setattr(request.state, self.settings.state_key, executor)
            logger.debug("Opened task scope for %s %s", scope.get("method"), request.url.path)
            await self.app(scope, receive, send)
