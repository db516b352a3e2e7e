"""Kiln exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class KilnError(Exception):
    """Base exception for all Kiln failures."""


class KilnConfigError(KilnError):
    """Raised for invalid runtime or plugin configuration."""


class KilnStageError(KilnError):
    """Raised when a pipeline stage fails during a build cycle."""


class KilnCacheError(KilnError):
    """Raised for cache store failures."""


class KilnBuildError(KilnError):
    """Raised when a full build triggered by the watcher fails."""


class KilnWatchError(KilnError):
    """Raised for filesystem watcher failures."""
