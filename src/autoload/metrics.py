"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for batch orchestrator observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

BATCHES_TOTAL = "batches_total"
TASK_RUNS_TOTAL = "task_runs_total"
TASK_FAILURES_TOTAL = "task_failures_total"
REGISTRATIONS_DROPPED_TOTAL = "registrations_dropped_total"

COUNTER_DOCS: dict[str, str] = {
    BATCHES_TOTAL: "Batches frozen and executed by lazy task executors.",
    TASK_RUNS_TOTAL: "Task producers started by lazy task executors.",
    TASK_FAILURES_TOTAL: "Task producers whose outcome was a stored error.",
    REGISTRATIONS_DROPPED_TOTAL: "Task registrations ignored because the id was already taken.",
}

COUNTER_LABELS: dict[str, tuple[str, ...]] = {
    REGISTRATIONS_DROPPED_TOTAL: ("reason",),
}


class TaskMetrics(Protocol):
    """Minimal metrics interface for orchestrator instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpTaskMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusTaskMetrics(TaskMetrics):
    """
    Prometheus-backed orchestrator metrics adapter.

    Requires `prometheus_client` package. The orchestrator counters are
    declared up front, so the unlabelled ones export zero before the first
    event. Other names are created on first use with their tag keys as labels.
    """

    def __init__(self, *, namespace: str = "autoload", registry: object | None = None) -> None:
        try:
            from prometheus_client import Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusTaskMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry
        self._counters: dict[str, object] = {}
        for name in COUNTER_DOCS:
            self._counter(name, COUNTER_LABELS.get(name, ()))

    def _counter(self, name: str, label_names: tuple[str, ...]) -> object:
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            kwargs: dict[str, object] = {}
            if self._registry is not None:
                kwargs["registry"] = self._registry
            counter = self._Counter(
                name=name,
                documentation=COUNTER_DOCS.get(name, f"autoload metric {name}"),
                namespace=self._namespace,
                labelnames=label_names,
                **kwargs,
            )
            self._counters[key] = counter
        return counter

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        tags = tags or {}
        label_names = COUNTER_LABELS.get(name)
        if label_names is None:
            label_names = () if name in COUNTER_DOCS else tuple(sorted(tags))
        counter = self._counter(name, label_names)

        if label_names:
            label_values = [str(tags.get(label, "")) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)
