"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception types raised by the autoload runtime.
"""

from __future__ import annotations


class AutoLoadError(RuntimeError):
    """Base class for autoload runtime failures."""


class AutoLoadConfigError(AutoLoadError):
    """Raised when autoload settings are invalid."""


class BatchNotSettledError(AutoLoadError):
    """Raised when a synchronous read targets a batch that has not settled."""


class ScopeError(AutoLoadError):
    """Raised for invalid request scope usage."""
