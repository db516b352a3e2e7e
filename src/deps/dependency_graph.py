"""Transitive invalidation through content references.

This module marks batch files as modified when they reference, directly
or through any chain of other files, a file that changed on disk.
"""

from __future__ import annotations

import os
from pathlib import Path

from core.constants import CONTENT_ENCODING
from core.logging_config import get_logger
from core.path_set import normalize_relative, relative_to_source
from core.types import Batch, ChangeSet, FileRecord
from deps.resolver_lookup import (
    CallbackResolver,
    Resolver,
    ResolverSpec,
    extension_key,
    lookup_resolver,
)

_LOGGER = get_logger(__name__)


def resolve_dependencies(
    batch: Batch,
    change_set: ChangeSet,
    source: Path,
    base_dir: str | None,
    resolver_spec: ResolverSpec,
) -> set[str]:
    """Mark files referencing changed files as modified, to a fixed point.

    Files whose resolver callback fails are marked modified, since their
    references are unknown.

    Args:
        batch: Current path to record mapping.
        change_set: Change set updated in place.
        source: Source root that batch paths are relative to.
        base_dir: Directory for references starting with a separator.
        resolver_spec: Normalized dependency resolver spec.

    Returns:
        Paths newly marked as modified.
    """
    references, unresolved = _collect_references(
        batch, change_set, source, base_dir, resolver_spec
    )
    newly_marked: set[str] = set()
    for path in sorted(unresolved):
        change_set.mark_modified(path)
        newly_marked.add(path)
    worklist = set(references)
    changed = True
    passes = 0
    while changed:
        changed = False
        passes += 1
        for path in sorted(worklist):
            if any(change_set.is_changed(reference) for reference in references[path]):
                change_set.mark_modified(path)
                newly_marked.add(path)
                worklist.discard(path)
                changed = True
    _LOGGER.debug(
        "dependency_graph_resolved",
        scanned=len(references),
        marked=len(newly_marked),
        passes=passes,
    )
    return newly_marked


def _collect_references(
    batch: Batch,
    change_set: ChangeSet,
    source: Path,
    base_dir: str | None,
    resolver_spec: ResolverSpec,
) -> tuple[dict[str, list[str]], set[str]]:
    """Extract normalized references for every file still worth scanning.

    Returns:
        References per scanned path, and paths whose references are unknown.
    """
    resolver_cache: dict[str, Resolver | None] = {}
    references: dict[str, list[str]] = {}
    unresolved: set[str] = set()
    for path, record in batch.items():
        if change_set.is_dirty(path):
            continue
        key = extension_key(path)
        if key not in resolver_cache:
            resolver_cache[key] = lookup_resolver(path, resolver_spec)
        resolver = resolver_cache[key]
        if resolver is None:
            continue
        raw_references = _extract_references(path, record, resolver, base_dir)
        if raw_references is None:
            unresolved.add(path)
            continue
        references[path] = [
            _normalize_reference(path, reference, source, base_dir)
            for reference in raw_references
        ]
    return references, unresolved


def _extract_references(
    path: str,
    record: FileRecord,
    resolver: Resolver,
    base_dir: str | None,
) -> list[str] | None:
    if isinstance(resolver, CallbackResolver):
        try:
            result = resolver.callback(record, base_dir)
        except Exception as error:
            _LOGGER.warning("dependency_callback_failed", path=path, error=str(error))
            return None
        return [reference for reference in result or [] if isinstance(reference, str)]
    text = record.contents.decode(CONTENT_ENCODING, errors="replace")
    return [match.group(1) for match in resolver.pattern.finditer(text) if match.group(1)]


def _normalize_reference(
    path: str,
    reference: str,
    source: Path,
    base_dir: str | None,
) -> str:
    """Express a reference relative to the source root."""
    if reference.startswith(("/", os.sep)):
        root = source if not base_dir else source / base_dir
        absolute = os.path.join(root, reference.lstrip("/" + os.sep))
        return relative_to_source(absolute, source)
    return normalize_relative(os.path.join(os.path.dirname(path), reference))
