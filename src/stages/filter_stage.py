"""Filter stage removing unchanged files from the active batch.

Unchanged records are parked on the session so the cache stage can put
them back, with their previously built output, after the slow stages ran.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from core.logging_config import get_logger
from core.path_set import match_any
from core.plugin_options import PluginOptions
from core.types import Batch, ChangeSet
from deps.dependency_graph import resolve_dependencies
from pipeline.host import Host
from pipeline.session import IncrementalSession

_LOGGER = get_logger(__name__)


class FilterStage:
    """Stage that narrows the batch to modified files and their dependents."""

    name = "kiln_filter"
    runs_after_failure = False

    def __init__(self, session: IncrementalSession, options: PluginOptions) -> None:
        self._session = session
        self._options = options

    def __call__(self, batch: Batch, host: Host) -> None:
        session = self._session
        with session.lock:
            if not session.ready or not session.cache.primed:
                _LOGGER.info("filter_passthrough", files=len(batch), ready=session.ready)
                return
            change_set = session.change_set
            forced = self._apply_force_targets(batch, change_set)
            dependents = resolve_dependencies(
                batch,
                change_set,
                Path(host.source),
                self._options.base_dir,
                self._options.dep_resolver,
            )
            filtered = filter_unchanged(batch, change_set, session.filtered_aside)
            _LOGGER.info(
                "filter_done",
                kept=len(batch),
                filtered=len(filtered),
                forced=len(forced),
                dependents=len(dependents),
            )

    def _apply_force_targets(self, batch: Batch, change_set: ChangeSet) -> set[str]:
        target_globs = list(change_set.force_targets)
        target_globs.extend(expand_force_targets(self._options.paths, change_set.modified_files))
        forced: set[str] = set()
        for glob in target_globs:
            for path in match_any(batch, glob):
                change_set.mark_modified(path)
                forced.add(path)
        for path in sorted(forced):
            _LOGGER.debug("filter_force_update", path=path)
        return forced


def expand_force_targets(paths: Mapping[str, str], modified_files: Iterable[str]) -> list[str]:
    """Return target globs whose source glob matches a modified path."""
    modified = sorted(modified_files)
    return [
        target_glob
        for source_glob, target_glob in paths.items()
        if match_any(modified, source_glob)
    ]


def filter_unchanged(batch: Batch, change_set: ChangeSet, filtered_aside: Batch) -> list[str]:
    """Move every clean path of the batch into ``filtered_aside``.

    Returns:
        Paths that were moved, in sorted order.
    """
    filtered = sorted(path for path in batch if not change_set.is_dirty(path))
    for path in filtered:
        filtered_aside[path] = batch.pop(path)
    return filtered
