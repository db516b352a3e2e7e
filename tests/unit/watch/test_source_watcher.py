"""Unit tests for the watchdog-backed watcher and the watch stage."""

from __future__ import annotations

import os
from pathlib import Path
import signal

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from core.plugin_options import PluginOptions
from pipeline.session import IncrementalSession
from watch.watcher import SourceWatcher, WatchStage, _ChangeRecordingHandler


class _RecordingDriver:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def record_event(self, kind: str, path: str) -> None:
        self.events.append((kind, path))

    def stop(self) -> None:
        self.events.append(("stopped", ""))


def _handler(source: Path) -> tuple[_ChangeRecordingHandler, _RecordingDriver]:
    driver = _RecordingDriver()
    return _ChangeRecordingHandler(source, driver), driver


def test_file_events_map_to_relative_paths(tmp_path: Path) -> None:
    """File events should be recorded relative to the source root."""
    handler, driver = _handler(tmp_path)

    handler.on_any_event(FileCreatedEvent(str(tmp_path / "posts" / "a.md")))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / "b.md")))
    handler.on_any_event(FileDeletedEvent(str(tmp_path / "c.md")))

    assert driver.events == [
        ("created", os.path.join("posts", "a.md")),
        ("modified", "b.md"),
        ("deleted", "c.md"),
    ]


def test_directory_events_map_to_dir_kinds(tmp_path: Path) -> None:
    """Directory creation and deletion should be recorded; modification ignored."""
    handler, driver = _handler(tmp_path)

    handler.on_any_event(DirCreatedEvent(str(tmp_path / "new")))
    handler.on_any_event(DirModifiedEvent(str(tmp_path / "new")))
    handler.on_any_event(DirDeletedEvent(str(tmp_path / "old")))

    assert driver.events == [("dir_created", "new"), ("dir_deleted", "old")]


def test_move_is_delete_then_create(tmp_path: Path) -> None:
    """A rename should remove the old path and create the new one."""
    handler, driver = _handler(tmp_path)

    handler.on_any_event(FileMovedEvent(str(tmp_path / "a.md"), str(tmp_path / "b.md")))

    assert driver.events == [("deleted", "a.md"), ("created", "b.md")]


def test_events_outside_source_are_ignored(tmp_path: Path) -> None:
    """Events on the root itself or outside it should be dropped."""
    source = tmp_path / "src"
    handler, driver = _handler(source)

    handler.on_any_event(DirCreatedEvent(str(source)))
    handler.on_any_event(FileCreatedEvent(str(tmp_path / "elsewhere.md")))

    assert driver.events == []


def test_source_watcher_start_marks_session_ready(tmp_path: Path) -> None:
    """Starting the watcher should mark the session ready until stopped."""
    session = IncrementalSession()
    driver = _RecordingDriver()
    watcher = SourceWatcher(session, driver, tmp_path)

    watcher.start()
    try:
        assert watcher.running and session.ready
    finally:
        watcher.stop()

    assert not watcher.running and driver.events[-1] == ("stopped", "")


def test_watch_stage_starts_watcher_once(tmp_path: Path, monkeypatch, static_host) -> None:
    """Later builds should reuse the watcher started by the first build."""
    monkeypatch.setattr(signal, "signal", lambda signum, handler: None)
    session = IncrementalSession()
    stage = WatchStage(session, PluginOptions(plugin="watch"))

    stage({}, static_host)
    first_watcher = stage.watcher
    stage({}, static_host)

    try:
        assert first_watcher is not None and stage.watcher is first_watcher
        assert session.watching and session.ready
    finally:
        first_watcher.stop()
