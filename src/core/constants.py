"""Core constants used across Kiln modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_DEBOUNCE_MS = 100
DEFAULT_PLUGIN = "filter"
SUPPORTED_PLUGINS = ("filter", "cache", "watch")
DEFAULT_PROPERTY_PATHS: tuple[tuple[str, ...], ...] = (("contents",),)
EXTENSION_ALIASES = {"jade": "pug"}
DEFAULT_DEPENDENCY_PATTERNS = {
    "pug": r"(?:include|extends)\s+([^\s]+)",
}
CONTENT_ENCODING = "utf-8"
OPTIONS_FILE_VERSION = 1
WATCHER_JOIN_TIMEOUT_SECONDS = 5.0
