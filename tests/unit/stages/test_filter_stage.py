"""Unit tests for the filter stage."""

from __future__ import annotations

from core.plugin_options import PluginOptions
from core.types import ChangeSet, FileRecord
from pipeline.session import IncrementalSession
from stages.filter_stage import FilterStage, expand_force_targets, filter_unchanged


def _record(text: str) -> FileRecord:
    return FileRecord(contents=text.encode("utf-8"))


def _primed_session() -> IncrementalSession:
    session = IncrementalSession()
    session.mark_ready()
    session.cache.merge({})
    return session


def test_filter_passes_everything_before_watcher_is_ready(static_host) -> None:
    """Nothing should be filtered while the session is not ready."""
    session = IncrementalSession()
    batch = {"a.md": _record("a"), "b.md": _record("b")}

    FilterStage(session, PluginOptions())(batch, static_host)

    assert sorted(batch) == ["a.md", "b.md"] and session.filtered_aside == {}


def test_filter_passes_everything_on_first_cycle(static_host) -> None:
    """A ready session without cached output should still build in full."""
    session = IncrementalSession()
    session.mark_ready()
    batch = {"a.md": _record("a"), "b.md": _record("b")}

    FilterStage(session, PluginOptions())(batch, static_host)

    assert sorted(batch) == ["a.md", "b.md"]


def test_filter_keeps_only_modified_files(static_host) -> None:
    """Clean files should move aside and modified files should stay."""
    session = _primed_session()
    session.change_set.mark_modified("a.md")
    batch = {"a.md": _record("a"), "b.md": _record("b")}

    FilterStage(session, PluginOptions())(batch, static_host)

    assert list(batch) == ["a.md"] and list(session.filtered_aside) == ["b.md"]


def test_filter_keeps_dependents_of_modified_files(static_host) -> None:
    """Files including a modified file should stay in the batch."""
    session = _primed_session()
    session.change_set.mark_modified("header.pug")
    batch = {
        "index.pug": _record("include header.pug"),
        "header.pug": _record("h1 hi"),
        "about.pug": _record("p about"),
    }

    FilterStage(session, PluginOptions())(batch, static_host)

    assert sorted(batch) == ["header.pug", "index.pug"]


def test_filter_keeps_files_under_created_directory(static_host) -> None:
    """Files under a created directory should stay in the batch."""
    session = _primed_session()
    session.change_set.mark_modified_dir("posts")
    batch = {"posts/one.md": _record("1"), "index.md": _record("i")}

    FilterStage(session, PluginOptions())(batch, static_host)

    assert list(batch) == ["posts/one.md"]


def test_filter_with_no_changes_filters_everything(static_host) -> None:
    """An empty change set should leave an empty batch."""
    session = _primed_session()
    batch = {"a.md": _record("a")}

    FilterStage(session, PluginOptions())(batch, static_host)

    assert batch == {} and list(session.filtered_aside) == ["a.md"]


def test_force_targets_mark_matching_batch_files(static_host) -> None:
    """Recorded force targets should keep every matching file."""
    session = _primed_session()
    session.change_set.mark_modified("templates/base.pug")
    session.change_set.force_targets.append("*")
    batch = {
        "templates/base.pug": _record("html"),
        "a.pug": _record("p a"),
        "b.pug": _record("p b"),
    }

    FilterStage(session, PluginOptions())(batch, static_host)

    assert sorted(batch) == ["a.pug", "b.pug", "templates/base.pug"]


def test_paths_option_forces_targets_of_modified_sources(static_host) -> None:
    """A modified file matching a source glob should force its target glob."""
    session = _primed_session()
    session.change_set.mark_modified("styles/site.css")
    options = PluginOptions(paths={"styles/*": "*.html"})
    batch = {
        "styles/site.css": _record("body {}"),
        "index.html": _record("<p>"),
        "notes.txt": _record("n"),
    }

    FilterStage(session, options)(batch, static_host)

    assert sorted(batch) == ["index.html", "styles/site.css"]


def test_filtering_twice_gives_same_batch(static_host) -> None:
    """Applying the filter to an already-filtered batch should change nothing."""
    session = _primed_session()
    session.change_set.mark_modified("a.md")
    batch = {"a.md": _record("a"), "b.md": _record("b")}
    stage = FilterStage(session, PluginOptions())
    stage(batch, static_host)

    stage(batch, static_host)

    assert list(batch) == ["a.md"] and list(session.filtered_aside) == ["b.md"]


def test_expand_force_targets_only_returns_triggered_targets() -> None:
    """Only target globs whose source glob matched should be returned."""
    paths = {"layouts/*": "*.html", "data/*": "*.json"}

    targets = expand_force_targets(paths, ["layouts/main.pug"])

    assert targets == ["*.html"]


def test_filter_unchanged_returns_sorted_moved_paths() -> None:
    """Moved paths should be reported in sorted order."""
    batch = {"z.md": _record("z"), "a.md": _record("a")}
    aside: dict[str, FileRecord] = {}

    moved = filter_unchanged(batch, ChangeSet(), aside)

    assert moved == ["a.md", "z.md"] and batch == {}


def test_failing_dependency_callback_does_not_fail_filter(static_host) -> None:
    """A raising resolver callback should keep its file and still filter the rest."""

    def _broken(record: FileRecord, base_dir: str | None) -> list[str]:
        raise RuntimeError("boom")

    session = _primed_session()
    session.change_set.mark_modified("b.md")
    options = PluginOptions.from_mapping({"depResolver": {"md": _broken}})
    batch = {"a.md": _record("a"), "b.md": _record("b"), "c.pug": _record("p c")}

    FilterStage(session, options)(batch, static_host)

    assert sorted(batch) == ["a.md", "b.md"]
    assert list(session.filtered_aside) == ["c.pug"]


def test_paths_option_ignores_unmodified_source_matches(static_host) -> None:
    """A source glob matching only unchanged batch files should force nothing."""
    session = _primed_session()
    session.change_set.mark_modified("notes.txt")
    options = PluginOptions(paths={"styles/*": "*.html"})
    batch = {
        "styles/site.css": _record("body {}"),
        "index.html": _record("<p>"),
        "notes.txt": _record("n"),
    }

    FilterStage(session, options)(batch, static_host)

    assert list(batch) == ["notes.txt"]
