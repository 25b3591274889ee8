"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-scoped deduplication of identical async calls.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class PromiseDedupe:
    """
    Deduplicate identical async calls for the lifetime of one instance.

    The first call for a key starts the producer and stores its future before
    it settles, so callers arriving in the same tick share the pending result.
    Entries are never evicted; failures are cached and not retried.
    """

    def __init__(self) -> None:
        self._futures: dict[str, asyncio.Future[Any]] = {}

    def __call__(self, key: str, producer: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        existing = self._futures.get(key)
        if existing is not None:
            return existing

        future: asyncio.Future[T] = asyncio.ensure_future(_invoke(producer))
        self._futures[key] = future
        return future

    def call(self, fn: Callable[..., Awaitable[T]], *args: Any) -> asyncio.Future[T]:
        """Dedupe `fn(*args)` keyed by the function name and JSON-encoded args."""
        return self(self.key_for(fn, args), lambda: fn(*args))

    @staticmethod
    def key_for(fn: Callable[..., Any], args: tuple[Any, ...]) -> str:
        name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", repr(fn))
        return f"{name}:{json.dumps(list(args), sort_keys=True, default=str)}"

    def __contains__(self, key: object) -> bool:
        return key in self._futures

    def __len__(self) -> int:
        return len(self._futures)


async def _invoke(producer: Callable[[], Awaitable[T]]) -> T:
    # Synchronous raises from `producer` land in the cached future as well.
    return await producer()
