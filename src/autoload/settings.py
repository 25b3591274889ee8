"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Autoload runtime settings and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import AutoLoadConfigError

DEFAULT_SKIP_PATH_PREFIXES: tuple[str, ...] = ("/_static", "/assets", "/api")


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise AutoLoadConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class AutoLoadSettings:
    """
    Explicit settings used by the batch orchestrator and request middleware.

    Attributes:
        stable_ticks: Consecutive event-loop ticks without registry growth
            required before a batch is frozen.
        max_collect_ticks: Upper bound on ticks spent collecting before a
            batch is frozen anyway. ``None`` disables the bound.
        skip_path_prefixes: Request paths the middleware passes through
            without opening a request scope.
        state_key: Attribute name used on ``request.state`` for the executor.
    """

    stable_ticks: int = 3
    max_collect_ticks: int | None = None
    skip_path_prefixes: tuple[str, ...] = DEFAULT_SKIP_PATH_PREFIXES
    state_key: str = "autoload"

    def validate(self) -> "AutoLoadSettings":
        """Raise ``AutoLoadConfigError`` for inconsistent values."""
        if self.stable_ticks < 1:
            raise AutoLoadConfigError("stable_ticks must be >= 1")
        if self.max_collect_ticks is not None and self.max_collect_ticks < self.stable_ticks:
            raise AutoLoadConfigError("max_collect_ticks must be >= stable_ticks")
        if not self.state_key.strip():
            raise AutoLoadConfigError("state_key must be non-empty")
        return self

    @staticmethod
    def from_env() -> "AutoLoadSettings":
        """Load settings from ``AUTOLOAD_*`` environment variables."""
        raw_prefixes = os.getenv("AUTOLOAD_SKIP_PATH_PREFIXES")
        if raw_prefixes is None:
            prefixes = DEFAULT_SKIP_PATH_PREFIXES
        else:
            prefixes = tuple(
                part.strip() for part in raw_prefixes.split(",") if part.strip()
            )
        settings = AutoLoadSettings(
            stable_ticks=_env_int("AUTOLOAD_STABLE_TICKS", 3) or 0,
            max_collect_ticks=_env_int("AUTOLOAD_MAX_COLLECT_TICKS", None),
            skip_path_prefixes=prefixes,
            state_key=os.getenv("AUTOLOAD_STATE_KEY", "autoload").strip(),
        )
        return settings.validate()
