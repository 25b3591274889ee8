"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Immutable per-request context passed to every task producer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from starlette.datastructures import URL

from .dedupe import PromiseDedupe

BASE_FIELDS: tuple[str, ...] = ("params", "url", "request", "dedupe")

ParamsSource = Mapping[str, Any] | Callable[[], Mapping[str, Any]]


class RouteParams(Mapping[str, str]):
    """
    Read-only view over route parameters that are resolved on every access.

    ASGI routers fill ``scope["path_params"]`` after outer middleware has run,
    so the view keeps a callable and reads through it instead of copying.
    ``None`` values are hidden and all values are exposed as strings.
    """

    __slots__ = ("_source",)

    def __init__(self, source: Callable[[], Mapping[str, Any] | None]) -> None:
        self._source = source

    def _current(self) -> dict[str, str]:
        raw = self._source() or {}
        return {str(key): str(value) for key, value in raw.items() if value is not None}

    def __getitem__(self, key: str) -> str:
        return self._current()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._current())

    def __len__(self) -> int:
        return len(self._current())

    def __repr__(self) -> str:
        return f"RouteParams({self._current()!r})"


class TaskContext(Mapping[str, Any]):
    """
    Read-only bundle of request data shared by all producers of one request.

    Fields are reachable both as attributes (``ctx.url``) and as mapping keys
    (``ctx["url"]``). Extension fields merged by ``create_task_context`` may
    shadow the base fields.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_fields", MappingProxyType(dict(fields)))

    @property
    def params(self) -> Mapping[str, str]:
        return self._fields["params"]

    @property
    def url(self) -> URL:
        return self._fields["url"]

    @property
    def request(self) -> Any:
        return self._fields["request"]

    @property
    def dedupe(self) -> PromiseDedupe:
        return self._fields["dedupe"]

    def __getattr__(self, name: str) -> Any:
        if name == "_fields":
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!s} has no field {name!r}"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"TaskContext(url={str(self._fields.get('url'))!r}, fields={sorted(self._fields)!r})"


def url_from_request(request: Any) -> URL:
    """Derive the request URL from a request handle or a plain URL string."""
    raw = getattr(request, "url", request)
    return URL(str(raw))


def create_task_context(
    *,
    params: ParamsSource,
    request: Any,
    extend: Callable[[], Mapping[str, Any]] | None = None,
    dedupe: PromiseDedupe | None = None,
) -> TaskContext:
    """
    Build the context object passed to all task producers of one request.

    Args:
        params: Route parameters for the request. A mapping is copied; a
            zero-argument callable is wrapped in ``RouteParams`` and read live.
        request: Opaque request handle; its ``url`` (or its string form) is
            parsed into ``context.url``.
        extend: Optional factory returning extra fields. Its keys are merged
            last and override base fields of the same name.
        dedupe: Dedupe cache to expose; a fresh one is created when omitted.
    """
    fields: dict[str, Any] = {
        "params": (
            RouteParams(params) if callable(params) else MappingProxyType(dict(params))
        ),
        "url": url_from_request(request),
        "request": request,
        "dedupe": dedupe if dedupe is not None else PromiseDedupe(),
    }
    if extend is not None:
        fields.update(extend())
    return TaskContext(fields)
