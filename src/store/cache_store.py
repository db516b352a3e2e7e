"""In-memory store of built file snapshots.

This module keeps deep-copied records from previous cycles so the
cache stage can restore outputs of files the filter stage skipped.
"""

from __future__ import annotations

import copy
from typing import Iterable, Iterator

from core.path_set import is_in_dirs
from core.types import Batch, FileRecord


class CacheStore:
    """Path to snapshot mapping owned by one incremental session."""

    def __init__(self) -> None:
        self._entries: dict[str, FileRecord] = {}
        self._primed = False

    @property
    def primed(self) -> bool:
        """Whether at least one cycle has been merged into the store."""
        return self._primed

    def get(self, path: str) -> FileRecord | None:
        return self._entries.get(path)

    def delete(self, path: str) -> bool:
        """Remove one entry and report whether it existed."""
        return self._entries.pop(path, None) is not None

    def delete_under(self, dirs: Iterable[str]) -> list[str]:
        """Remove every entry lying under one of the directory prefixes."""
        prefixes = list(dirs)
        if not prefixes:
            return []
        removed = [path for path in self._entries if is_in_dirs(path, prefixes)]
        for path in removed:
            del self._entries[path]
        return removed

    def merge(self, snapshot: Batch) -> None:
        """Add new snapshot entries and overwrite existing ones."""
        self._entries.update(snapshot)
        self._primed = True

    def paths(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())

    def __len__(self) -> int:
        return len(self._entries)


def snapshot_batch(batch: Batch) -> Batch:
    """Deep-copy a batch so later stage mutations cannot leak into the store."""
    return copy.deepcopy(batch)
