"""Build cycle driver turning recorded changes into host builds.

Filesystem events land in the session change set and restart a debounce
timer. When the timer fires, the driver runs exactly one host build, then
clears the consumed changes whether the build succeeded or failed.
"""

from __future__ import annotations

from typing import Literal, Mapping

from core.errors import KilnBuildError
from core.logging_config import get_logger
from pipeline.host import Host
from pipeline.session import IncrementalSession
from stages.filter_stage import expand_force_targets
from watch.debounce import Debouncer

_LOGGER = get_logger(__name__)

EventKind = Literal["created", "modified", "deleted", "dir_created", "dir_deleted"]


class CycleDriver:
    """Debounced rebuild trigger for one incremental session."""

    def __init__(
        self,
        session: IncrementalSession,
        host: Host,
        paths: Mapping[str, str],
        delay_ms: int,
    ) -> None:
        self._session = session
        self._host = host
        self._paths = dict(paths)
        self._debouncer = Debouncer(delay_ms / 1000.0, self.trigger)

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    def record_event(self, kind: EventKind, path: str) -> None:
        """Record one filesystem event and restart the debounce timer."""
        session = self._session
        with session.lock:
            change_set = session.active_change_set()
            if kind in ("created", "modified"):
                change_set.mark_modified(path)
            elif kind == "deleted":
                change_set.mark_removed(path)
            elif kind == "dir_created":
                change_set.mark_modified_dir(path)
            elif kind == "dir_deleted":
                change_set.mark_removed_dir(path)
            else:
                return
        _LOGGER.info("watch_event", kind=kind, path=path)
        self._debouncer.restart()

    def trigger(self) -> None:
        """Run one host build for the accumulated changes.

        A trigger arriving while a build is in flight is queued and replayed
        once that build completes.

        Raises:
            KilnBuildError: If the host build reports a failure.
        """
        session = self._session
        with session.lock:
            if session.building:
                session.rebuild_queued = True
                _LOGGER.info("build_queued")
                return
            session.building = True
            session.rebuild_queued = False
            change_set = session.change_set
            for glob in expand_force_targets(self._paths, change_set.modified_files):
                if glob not in change_set.force_targets:
                    change_set.force_targets.append(glob)
        _LOGGER.info("build_start")
        outcome: list[BaseException | None] = []

        def on_complete(error: BaseException | None) -> None:
            if outcome:
                return
            outcome.append(error)
            self._complete(error)

        try:
            self._host.build(on_complete)
        except Exception as error:
            on_complete(error)
        if outcome and outcome[0] is not None:
            raise KilnBuildError(f"Incremental build failed: {outcome[0]}") from outcome[0]

    def stop(self) -> None:
        self._debouncer.cancel()

    def _complete(self, error: BaseException | None) -> None:
        session = self._session
        session.finish_cycle()
        with session.lock:
            replay = session.rebuild_queued or not session.change_set.is_empty()
            session.rebuild_queued = False
        if error is not None:
            _LOGGER.error("build_failed", error=str(error))
        else:
            _LOGGER.info("build_done")
        if replay:
            self._debouncer.restart()
