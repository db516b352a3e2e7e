"""Filesystem watcher feeding the cycle driver, and the watch stage.

Uses watchdog to observe the host source tree recursively. Files present
before the observer starts produce no events, so the first build always
runs in full while later builds only see what changed.
"""

from __future__ import annotations

import os
from pathlib import Path
import signal
import threading
from types import FrameType

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from core.constants import WATCHER_JOIN_TIMEOUT_SECONDS
from core.errors import KilnWatchError
from core.logging_config import get_logger
from core.path_set import relative_to_source
from core.plugin_options import PluginOptions
from core.types import Batch
from pipeline.host import Host
from pipeline.session import IncrementalSession
from watch.cycle_driver import CycleDriver, EventKind

_LOGGER = get_logger(__name__)


class _ChangeRecordingHandler(FileSystemEventHandler):
    """Translate watchdog events into driver events relative to the source."""

    def __init__(self, source: Path, driver: CycleDriver) -> None:
        super().__init__()
        self._source = source
        self._driver = driver

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type == "moved":
            self._record(_deleted_kind(event.is_directory), event.src_path)
            self._record(_created_kind(event.is_directory), getattr(event, "dest_path", ""))
            return
        kind = _event_kind(event.event_type, event.is_directory)
        if kind is not None:
            self._record(kind, event.src_path)

    def _record(self, kind: EventKind, raw_path: str | bytes) -> None:
        if not raw_path:
            return
        relative_path = relative_to_source(os.fsdecode(raw_path), self._source)
        if relative_path == "." or relative_path.startswith(".."):
            return
        self._driver.record_event(kind, relative_path)


class SourceWatcher:
    """Recursive watchdog observer bound to one incremental session."""

    def __init__(self, session: IncrementalSession, driver: CycleDriver, source: Path) -> None:
        self._session = session
        self._driver = driver
        self._source = Path(source).resolve()
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Begin watching and switch the session to ready.

        Raises:
            KilnWatchError: If the source directory cannot be watched.
        """
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(
            _ChangeRecordingHandler(self._source, self._driver),
            str(self._source),
            recursive=True,
        )
        try:
            observer.start()
        except OSError as error:
            raise KilnWatchError(
                f"Failed to watch {self._source}: {error}. Check the source directory exists."
            ) from error
        self._observer = observer
        self._session.mark_ready()
        _LOGGER.info("watch_started", source=str(self._source))

    def stop(self) -> None:
        """Stop watching and cancel any pending rebuild."""
        self._driver.stop()
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=WATCHER_JOIN_TIMEOUT_SECONDS)
        self._observer = None
        _LOGGER.info("watch_stopped", source=str(self._source))


class WatchStage:
    """Stage starting the session watcher on the first build only."""

    name = "kiln_watch"
    runs_after_failure = False

    def __init__(self, session: IncrementalSession, options: PluginOptions) -> None:
        self._session = session
        self._options = options
        self._watcher: SourceWatcher | None = None

    @property
    def watcher(self) -> SourceWatcher | None:
        return self._watcher

    def __call__(self, batch: Batch, host: Host) -> None:
        with self._session.lock:
            if self._session.watching:
                return
            self._session.watching = True
        driver = CycleDriver(
            self._session,
            host,
            self._options.paths,
            self._options.delay_ms,
        )
        self._watcher = SourceWatcher(self._session, driver, Path(host.source))
        self._watcher.start()
        _install_stop_handlers(self._watcher)


def _install_stop_handlers(watcher: SourceWatcher) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def _stop(signum: int, frame: FrameType | None) -> None:
        watcher.stop()
        raise SystemExit(0)

    for signal_name in ("SIGINT", "SIGTERM", "SIGQUIT"):
        signal_number = getattr(signal, signal_name, None)
        if signal_number is not None:
            signal.signal(signal_number, _stop)


def _event_kind(event_type: str, is_directory: bool) -> EventKind | None:
    if event_type == "created":
        return _created_kind(is_directory)
    if event_type == "deleted":
        return _deleted_kind(is_directory)
    if event_type == "modified" and not is_directory:
        return "modified"
    return None


def _created_kind(is_directory: bool) -> EventKind:
    return "dir_created" if is_directory else "created"


def _deleted_kind(is_directory: bool) -> EventKind:
    return "dir_deleted" if is_directory else "deleted"
