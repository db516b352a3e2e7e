"""Per-pipeline incremental session state.

One session is shared by the filter, cache and watch stages of a single
pipeline. It owns every piece of cross-cycle state, so several pipelines
can run incrementally in the same process without interfering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading

from core.types import Batch, ChangeSet
from store.cache_store import CacheStore


@dataclass
class IncrementalSession:
    """Shared mutable state for one incremental pipeline.

    Attributes:
        change_set: Changes consumed by the next (or current) cycle.
        pending: Changes recorded while a build is in flight.
        cache: Snapshots of previous cycles.
        filtered_aside: Records the filter stage removed from the current batch.
        ready: Whether the watcher finished starting up.
        watching: Whether a watcher was started for this session.
        building: Whether a build cycle is in flight.
        rebuild_queued: Whether a trigger arrived during the in-flight build.
        lock: Serializes every mutation made from watcher and timer threads.
    """

    change_set: ChangeSet = field(default_factory=ChangeSet)
    pending: ChangeSet = field(default_factory=ChangeSet)
    cache: CacheStore = field(default_factory=CacheStore)
    filtered_aside: Batch = field(default_factory=dict)
    ready: bool = False
    watching: bool = False
    building: bool = False
    rebuild_queued: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def mark_ready(self) -> None:
        with self.lock:
            self.ready = True

    def active_change_set(self) -> ChangeSet:
        """Return the change set new filesystem events should go to."""
        return self.pending if self.building else self.change_set

    def finish_cycle(self) -> None:
        """Clear consumed changes and promote changes recorded mid-build."""
        with self.lock:
            self.change_set.clear()
            self.change_set.merge(self.pending)
            self.pending.clear()
            self.filtered_aside.clear()
            self.building = False
