"""Dependency resolver configuration and per-file lookup.

This module turns user resolver configuration into tagged variants once
and picks the concrete pattern or callback that applies to a file.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import Callable, Mapping, Union

from core.constants import DEFAULT_DEPENDENCY_PATTERNS, EXTENSION_ALIASES
from core.logging_config import get_logger
from core.types import FileRecord

_LOGGER = get_logger(__name__)

DependencyCallback = Callable[[FileRecord, Union[str, None]], list[str]]


@dataclass(frozen=True)
class PatternResolver:
    """Regex whose first capture group is one referenced path."""

    pattern: re.Pattern[str]


@dataclass(frozen=True)
class CallbackResolver:
    """Callable returning the paths referenced by a file."""

    callback: DependencyCallback


Resolver = Union[PatternResolver, CallbackResolver]


@dataclass(frozen=True)
class ResolverMap:
    """Resolvers keyed by file extension without the leading dot."""

    entries: Mapping[str, Resolver]


ResolverSpec = Union[Resolver, ResolverMap, None]

_DEFAULT_RESOLVERS: dict[str, Resolver] = {
    key: PatternResolver(re.compile(pattern, re.MULTILINE))
    for key, pattern in DEFAULT_DEPENDENCY_PATTERNS.items()
}


def build_resolver_spec(raw: object) -> ResolverSpec:
    """Normalize user resolver configuration into a tagged variant.

    Args:
        raw: Pattern string, compiled pattern, callable, extension mapping or None.

    Returns:
        Normalized resolver spec. Unsupported shapes yield None.
    """
    if raw is None or isinstance(raw, (PatternResolver, CallbackResolver, ResolverMap)):
        return raw
    if isinstance(raw, Mapping):
        entries: dict[str, Resolver] = {}
        for key, value in raw.items():
            resolver = _build_single_resolver(value)
            if resolver is None:
                _LOGGER.debug("resolver_entry_ignored", extension=str(key))
                continue
            entries[str(key).lstrip(".")] = resolver
        return ResolverMap(entries=entries)
    resolver = _build_single_resolver(raw)
    if resolver is None:
        _LOGGER.debug("resolver_ignored", kind=type(raw).__name__)
    return resolver


def lookup_resolver(path: str, spec: ResolverSpec) -> Resolver | None:
    """Return the resolver that applies to one file.

    Args:
        path: Relative path of the file.
        spec: Normalized resolver spec.

    Returns:
        Concrete resolver, or None when the file is exempt from scanning.
    """
    if isinstance(spec, (PatternResolver, CallbackResolver)):
        return spec
    key = extension_key(path)
    if isinstance(spec, ResolverMap) and key in spec.entries:
        return spec.entries[key]
    return _DEFAULT_RESOLVERS.get(key)


def extension_key(path: str) -> str:
    """Return the lookup key for a file extension."""
    key = os.path.splitext(path)[1][1:]
    return EXTENSION_ALIASES.get(key, key)


def _build_single_resolver(raw: object) -> Resolver | None:
    if isinstance(raw, (PatternResolver, CallbackResolver)):
        return raw
    if isinstance(raw, str):
        return PatternResolver(re.compile(raw, re.MULTILINE))
    if isinstance(raw, re.Pattern):
        return PatternResolver(raw)
    if callable(raw):
        return CallbackResolver(raw)
    return None
