"""Shared typed models.

This module defines the data models shared by the dependency graph,
the filter and cache stages, the watcher and the reference host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from core.path_set import is_in_dirs


@dataclass
class FileRecord:
    """One file flowing through a build pipeline.

    Attributes:
        contents: Raw file payload.
        metadata: Arbitrary host or stage metadata.
    """

    contents: bytes
    metadata: dict[str, object] = field(default_factory=dict)


Batch = dict[str, FileRecord]
BuildCallback = Callable[[BaseException | None], None]


@dataclass(frozen=True)
class PathParts:
    """Decomposed relative path handed to rename callbacks.

    Attributes:
        dirname: Directory part, ``""`` for top-level files.
        basename: File name without extension.
        ext: Extension including the leading dot.
    """

    dirname: str
    basename: str
    ext: str


@dataclass
class ChangeSet:
    """Filesystem changes accumulated between two build cycles.

    A path is never both modified and removed: the latest event for a
    path replaces the earlier one.
    """

    modified_files: set[str] = field(default_factory=set)
    modified_dirs: list[str] = field(default_factory=list)
    removed_files: set[str] = field(default_factory=set)
    removed_dirs: list[str] = field(default_factory=list)
    force_targets: list[str] = field(default_factory=list)

    def mark_modified(self, path: str) -> None:
        self.removed_files.discard(path)
        self.modified_files.add(path)

    def mark_removed(self, path: str) -> None:
        self.modified_files.discard(path)
        self.removed_files.add(path)

    def mark_modified_dir(self, path: str) -> None:
        if path not in self.modified_dirs:
            self.modified_dirs.append(path)

    def mark_removed_dir(self, path: str) -> None:
        if path not in self.removed_dirs:
            self.removed_dirs.append(path)

    def is_dirty(self, path: str) -> bool:
        """Return whether a batch path must go through the slow stages."""
        return (
            path in self.modified_files
            or is_in_dirs(path, self.modified_dirs)
            or is_in_dirs(path, self.removed_dirs)
        )

    def is_changed(self, path: str) -> bool:
        """Return whether a referenced path invalidates its referrers."""
        return path in self.removed_files or self.is_dirty(path)

    def is_empty(self) -> bool:
        return not (
            self.modified_files
            or self.modified_dirs
            or self.removed_files
            or self.removed_dirs
            or self.force_targets
        )

    def merge(self, other: "ChangeSet") -> None:
        """Replay another change set on top of this one."""
        for path in sorted(other.removed_files):
            self.mark_removed(path)
        for path in sorted(other.modified_files):
            self.mark_modified(path)
        for path in other.modified_dirs:
            self.mark_modified_dir(path)
        for path in other.removed_dirs:
            self.mark_removed_dir(path)
        for glob in other.force_targets:
            if glob not in self.force_targets:
                self.force_targets.append(glob)

    def clear(self) -> None:
        self.modified_files.clear()
        self.modified_dirs.clear()
        self.removed_files.clear()
        self.removed_dirs.clear()
        self.force_targets.clear()
