"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared runtime type aliases.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .context import TaskContext

# Producer signature: receives the request context, resolves to one value.
TaskProducer = Callable[["TaskContext"], Awaitable[Any]]

BatchState = Literal["idle", "collecting", "stable", "executing", "settled"]
