"""Field-path property copy between file records.

The first segment of a path names a record attribute (``contents``,
``metadata``) or, when no such attribute exists, a metadata key. Later
segments walk nested mappings or attributes.
"""

from __future__ import annotations

import copy
from typing import Iterable, MutableMapping

from core.errors import KilnCacheError
from core.types import FileRecord

_MISSING = object()


def copy_properties(
    source: FileRecord,
    target: FileRecord,
    property_paths: Iterable[tuple[str, ...]],
) -> list[tuple[str, ...]]:
    """Copy each field path present on ``source`` onto ``target``.

    Args:
        source: Record the values are read from.
        target: Record updated in place.
        property_paths: Explicit field paths to copy.

    Returns:
        Field paths that were copied; paths missing on ``source`` are skipped.

    Raises:
        KilnCacheError: If a path cannot be written on ``target``.
    """
    copied: list[tuple[str, ...]] = []
    for property_path in property_paths:
        if not property_path:
            continue
        value = read_path(source, property_path)
        if value is _MISSING:
            continue
        write_path(target, property_path, copy.deepcopy(value))
        copied.append(property_path)
    return copied


def read_path(record: FileRecord, property_path: tuple[str, ...]) -> object:
    current = _read_root(record, property_path[0])
    for segment in property_path[1:]:
        current = _read_child(current, segment)
        if current is _MISSING:
            break
    return current


def write_path(record: FileRecord, property_path: tuple[str, ...], value: object) -> None:
    head = property_path[0]
    if len(property_path) == 1:
        if hasattr(record, head):
            setattr(record, head, value)
        else:
            record.metadata[head] = value
        return
    parent = _read_root(record, head)
    if parent is _MISSING:
        parent = {}
        record.metadata[head] = parent
    for segment in property_path[1:-1]:
        child = _read_child(parent, segment)
        if child is _MISSING:
            child = {}
            _write_child(parent, segment, child)
        parent = child
    _write_child(parent, property_path[-1], value)


def _read_root(record: FileRecord, head: str) -> object:
    if hasattr(record, head):
        return getattr(record, head)
    return record.metadata.get(head, _MISSING)


def _read_child(container: object, segment: str) -> object:
    if isinstance(container, MutableMapping):
        return container.get(segment, _MISSING)
    return getattr(container, segment, _MISSING)


def _write_child(container: object, segment: str, value: object) -> None:
    if isinstance(container, MutableMapping):
        container[segment] = value
        return
    try:
        setattr(container, segment, value)
    except (AttributeError, TypeError) as error:
        raise KilnCacheError(
            f"Cannot restore property '{segment}' onto {type(container).__name__}: {error}. "
            "Point the props option at mappings or record fields."
        ) from error
