from __future__ import annotations

import pytest

from autoload.errors import AutoLoadConfigError
from autoload.metrics import (
    BATCHES_TOTAL,
    COUNTER_DOCS,
    REGISTRATIONS_DROPPED_TOTAL,
    TASK_FAILURES_TOTAL,
    TASK_RUNS_TOTAL,
    NoOpTaskMetrics,
    PrometheusTaskMetrics,
)
from autoload.settings import DEFAULT_SKIP_PATH_PREFIXES, AutoLoadSettings


def test_default_settings_are_valid():
    settings = AutoLoadSettings().validate()

    assert settings.stable_ticks == 3
    assert settings.max_collect_ticks is None
    assert settings.skip_path_prefixes == DEFAULT_SKIP_PATH_PREFIXES
    assert settings.state_key == "autoload"


def test_from_env_reads_autoload_variables(monkeypatch):
    monkeypatch.setenv("AUTOLOAD_STABLE_TICKS", "5")
    monkeypatch.setenv("AUTOLOAD_MAX_COLLECT_TICKS", "50")
    monkeypatch.setenv("AUTOLOAD_SKIP_PATH_PREFIXES", "/static, /health ,")
    monkeypatch.setenv("AUTOLOAD_STATE_KEY", "tasks")

    settings = AutoLoadSettings.from_env()

    assert settings.stable_ticks == 5
    assert settings.max_collect_ticks == 50
    assert settings.skip_path_prefixes == ("/static", "/health")
    assert settings.state_key == "tasks"


def test_from_env_falls_back_to_defaults(monkeypatch):
    for name in (
        "AUTOLOAD_STABLE_TICKS",
        "AUTOLOAD_MAX_COLLECT_TICKS",
        "AUTOLOAD_SKIP_PATH_PREFIXES",
        "AUTOLOAD_STATE_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    assert AutoLoadSettings.from_env() == AutoLoadSettings()


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({"AUTOLOAD_STABLE_TICKS": "three"}, "must be an integer"),
        ({"AUTOLOAD_STABLE_TICKS": "0"}, "stable_ticks"),
        ({"AUTOLOAD_MAX_COLLECT_TICKS": "2"}, "max_collect_ticks"),
    ],
)
def test_from_env_rejects_invalid_values(monkeypatch, env, message):
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    with pytest.raises(AutoLoadConfigError, match=message):
        AutoLoadSettings.from_env()


def test_validate_rejects_blank_state_key():
    with pytest.raises(AutoLoadConfigError):
        AutoLoadSettings(state_key="  ").validate()


def test_noop_metrics_accepts_any_counter():
    NoOpTaskMetrics().incr(BATCHES_TOTAL, 3, tags={"reason": "x"})


def test_prometheus_metrics_register_counters():
    prometheus_client = pytest.importorskip("prometheus_client")
    registry = prometheus_client.CollectorRegistry()
    metrics = PrometheusTaskMetrics(registry=registry)

    metrics.incr(BATCHES_TOTAL)
    metrics.incr(BATCHES_TOTAL, 2)
    metrics.incr("registrations_dropped_total", tags={"reason": "duplicate"})

    assert registry.get_sample_value("autoload_batches_total") == 3
    assert (
        registry.get_sample_value(
            "autoload_registrations_dropped_total", {"reason": "duplicate"}
        )
        == 1
    )


def test_prometheus_metrics_predeclare_documented_counters():
    prometheus_client = pytest.importorskip("prometheus_client")
    registry = prometheus_client.CollectorRegistry()
    PrometheusTaskMetrics(registry=registry)

    for name in (BATCHES_TOTAL, TASK_RUNS_TOTAL, TASK_FAILURES_TOTAL):
        assert registry.get_sample_value(f"autoload_{name}") == 0

    documentation = {family.name: family.documentation for family in registry.collect()}
    assert documentation["autoload_task_runs"] == COUNTER_DOCS[TASK_RUNS_TOTAL]
    assert documentation["autoload_registrations_dropped"] == COUNTER_DOCS[
        REGISTRATIONS_DROPPED_TOTAL
    ]


def test_prometheus_metrics_keep_fixed_labels_for_known_counters():
    prometheus_client = pytest.importorskip("prometheus_client")
    registry = prometheus_client.CollectorRegistry()
    metrics = PrometheusTaskMetrics(registry=registry)

    metrics.incr(REGISTRATIONS_DROPPED_TOTAL)
    metrics.incr(TASK_RUNS_TOTAL, tags={"task": "ignored"})

    assert (
        registry.get_sample_value("autoload_registrations_dropped_total", {"reason": ""})
        == 1
    )
    assert registry.get_sample_value("autoload_task_runs_total") == 1
