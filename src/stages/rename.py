"""Rename rules relating source paths to their built output paths.

The cache stage uses these rules to find the snapshot of a file whose
slow stages changed its name (``page.pug`` built into ``page.html``).
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import Callable, Mapping, Union

from core.logging_config import get_logger
from core.types import PathParts

_LOGGER = get_logger(__name__)

RenameCallback = Callable[[PathParts], object]


@dataclass(frozen=True)
class CallbackRename:
    """Rename computed by a callable over decomposed paths."""

    callback: RenameCallback


@dataclass(frozen=True)
class PatternRename:
    """Rename computed by one regex substitution."""

    pattern: re.Pattern[str]
    replacement: str


RenameRule = Union[CallbackRename, PatternRename, None]


def build_rename_rule(raw: object) -> RenameRule:
    """Normalize user rename configuration.

    Accepts a callable, or a mapping with ``pattern``/``replacement`` keys
    (``from``/``to`` are accepted as aliases). Anything else disables renaming.
    """
    if raw is None or isinstance(raw, (CallbackRename, PatternRename)):
        return raw
    if callable(raw):
        return CallbackRename(raw)
    if isinstance(raw, Mapping):
        pattern = raw.get("pattern", raw.get("from"))
        replacement = raw.get("replacement", raw.get("to"))
        if isinstance(pattern, str) and pattern:
            pattern = re.compile(pattern)
        if isinstance(pattern, re.Pattern) and isinstance(replacement, str):
            return PatternRename(pattern=pattern, replacement=replacement)
    _LOGGER.debug("rename_rule_ignored", kind=type(raw).__name__)
    return None


def resolve_rename(path: str, rule: RenameRule) -> str:
    """Apply a rename rule to a relative path.

    Args:
        path: Relative path to rename.
        rule: Normalized rename rule.

    Returns:
        Renamed path, or ``path`` unchanged when no rule applies.
    """
    if isinstance(rule, PatternRename):
        return rule.pattern.sub(rule.replacement, path, count=1)
    if isinstance(rule, CallbackRename):
        parts = _coerce_parts(rule.callback(split_parts(path)))
        if parts is None:
            _LOGGER.warning("rename_callback_invalid_result", path=path)
            return path
        return join_parts(parts)
    return path


def split_parts(path: str) -> PathParts:
    dirname, filename = os.path.split(path)
    basename, ext = os.path.splitext(filename)
    return PathParts(dirname=dirname, basename=basename, ext=ext)


def join_parts(parts: PathParts) -> str:
    filename = f"{parts.basename}{parts.ext}"
    return os.path.join(parts.dirname, filename) if parts.dirname else filename


def _coerce_parts(value: object) -> PathParts | None:
    if isinstance(value, PathParts):
        return value
    if isinstance(value, Mapping):
        return PathParts(
            dirname=str(value.get("dirname", "")),
            basename=str(value.get("basename", "")),
            ext=str(value.get("ext", "")),
        )
    return None
