"""Relative path helpers.

This module centralizes directory-prefix tests and path normalization
so the watcher, dependency graph and cache agree on path identity.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable


def is_in_dirs(path: str, dirs: Iterable[str]) -> bool:
    """Return whether a path equals or lies under any of the directories.

    Args:
        path: Relative file path.
        dirs: Relative directory paths used as prefixes.

    Returns:
        True when one directory is an ancestor of (or equal to) ``path``.
    """
    normalized_path = normalize_relative(path)
    for directory in dirs:
        prefix = normalize_relative(directory)
        if prefix in ("", "."):
            return True
        if normalized_path == prefix or normalized_path.startswith(prefix + os.sep):
            return True
    return False


def normalize_relative(path: str) -> str:
    """Normalize separators and dot segments of a relative path."""
    return os.path.normpath(path.replace("/", os.sep)) if path else ""


def relative_to_source(path: str | Path, source: Path) -> str:
    """Express an absolute filesystem path relative to the source root."""
    return os.path.relpath(os.path.abspath(path), os.path.abspath(source))


def match_any(paths: Iterable[str], glob: str) -> list[str]:
    """Return the paths matched by a glob, in input order."""
    normalized_glob = normalize_relative(glob)
    return [path for path in paths if fnmatch.fnmatchcase(path, normalized_glob)]
