"""Cache stage snapshotting built files and restoring filtered ones.

The stage runs after the slow stages of every cycle, including failed
ones, so files parked by the filter stage always return to the batch.
"""

from __future__ import annotations

from core.logging_config import get_logger
from core.plugin_options import PluginOptions
from core.types import Batch, ChangeSet
from pipeline.host import Host
from pipeline.session import IncrementalSession
from stages.property_copy import copy_properties
from stages.rename import RenameRule, resolve_rename
from store.cache_store import CacheStore, snapshot_batch

_LOGGER = get_logger(__name__)


class CacheStage:
    """Stage that reconciles the session cache with the finished batch."""

    name = "kiln_cache"
    runs_after_failure = True

    def __init__(self, session: IncrementalSession, options: PluginOptions) -> None:
        self._session = session
        self._options = options

    def __call__(self, batch: Batch, host: Host) -> None:
        session = self._session
        with session.lock:
            snapshot = snapshot_batch(batch)
            restored: list[str] = []
            if session.cache.primed:
                forget_removed_files(session.cache, session.change_set, self._options.rename)
                session.cache.delete_under(session.change_set.removed_dirs)
                restored = self._restore_filtered(batch, session.filtered_aside)
            session.filtered_aside.clear()
            session.cache.merge(snapshot)
            _LOGGER.info(
                "cache_done",
                snapshot=len(snapshot),
                restored=len(restored),
                cached=len(session.cache),
            )

    def _restore_filtered(self, batch: Batch, filtered_aside: Batch) -> list[str]:
        cache = self._session.cache
        restored: list[str] = []
        for path in sorted(filtered_aside):
            cached_path = find_cached_path(cache, path, self._options.rename)
            if cached_path is None:
                _LOGGER.warning("cache_restore_missing", path=path)
                continue
            if cached_path in batch:
                continue
            record = filtered_aside[path]
            cached_record = cache.get(cached_path)
            if cached_record is not None:
                copy_properties(cached_record, record, self._options.properties)
            batch[cached_path] = record
            restored.append(cached_path)
        return restored


def find_cached_path(cache: CacheStore, path: str, rename: RenameRule) -> str | None:
    """Return the stored path for a source path, directly or through the rename rule."""
    if path in cache:
        return path
    if rename is None:
        return None
    renamed = resolve_rename(path, rename)
    return renamed if renamed in cache else None


def forget_removed_files(cache: CacheStore, change_set: ChangeSet, rename: RenameRule) -> list[str]:
    """Drop cache entries of deleted source files.

    Resolved paths are discarded from ``change_set.removed_files``.
    """
    forgotten: list[str] = []
    for path in sorted(change_set.removed_files):
        cached_path = find_cached_path(cache, path, rename)
        if cached_path is None:
            continue
        cache.delete(cached_path)
        change_set.removed_files.discard(path)
        forgotten.append(cached_path)
    return forgotten
