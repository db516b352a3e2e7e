"""Unit tests for transitive dependency invalidation."""

from __future__ import annotations

import os
from pathlib import Path

from core.types import ChangeSet, FileRecord
from deps.dependency_graph import resolve_dependencies
from deps.resolver_lookup import build_resolver_spec


def _record(text: str) -> FileRecord:
    return FileRecord(contents=text.encode("utf-8"))


def _changes(*modified: str) -> ChangeSet:
    change_set = ChangeSet()
    for path in modified:
        change_set.mark_modified(path)
    return change_set


def test_include_of_modified_parent_marks_child(tmp_path: Path) -> None:
    """A file including a modified file should become modified."""
    batch = {"child.pug": _record("include parent.pug"), "parent.pug": _record("h1 hi")}
    change_set = _changes("parent.pug")

    resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert change_set.modified_files == {"child.pug", "parent.pug"}


def test_chain_of_references_is_marked_transitively(tmp_path: Path) -> None:
    """A references B references C: modifying C marks A and B."""
    batch = {
        "a.pug": _record("include b.pug"),
        "b.pug": _record("include c.pug"),
        "c.pug": _record("p leaf"),
    }
    change_set = _changes("c.pug")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"a.pug", "b.pug"}


def test_chain_order_does_not_matter(tmp_path: Path) -> None:
    """Propagation should reach files scanned before their dependency was marked."""
    batch = {
        "a1.pug": _record("include a2.pug"),
        "a2.pug": _record("include a3.pug"),
        "a3.pug": _record("include a4.pug"),
        "a4.pug": _record("include leaf.pug"),
        "leaf.pug": _record("p leaf"),
    }
    change_set = _changes("leaf.pug")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"a1.pug", "a2.pug", "a3.pug", "a4.pug"}


def test_cycle_is_marked_as_a_block(tmp_path: Path) -> None:
    """Cyclic references should terminate and mark the whole cycle."""
    batch = {
        "x.pug": _record("include y.pug\ninclude base.pug"),
        "y.pug": _record("include x.pug"),
        "base.pug": _record("p base"),
    }
    change_set = _changes("base.pug")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"x.pug", "y.pug"}


def test_cycle_without_changes_marks_nothing(tmp_path: Path) -> None:
    """Unchanged cycles should not be marked."""
    batch = {"x.pug": _record("include y.pug"), "y.pug": _record("include x.pug")}
    change_set = _changes("other.md")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == set()


def test_relative_reference_resolves_from_referencing_directory(tmp_path: Path) -> None:
    """Relative references should be resolved against the file's directory."""
    nav_path = os.path.join("partials", "nav.pug")
    batch = {
        os.path.join("views", "page.pug"): _record("include ../partials/nav.pug"),
        nav_path: _record("nav"),
    }
    change_set = _changes(nav_path)

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {os.path.join("views", "page.pug")}


def test_absolute_reference_resolves_against_base_dir(tmp_path: Path) -> None:
    """References starting with a separator should resolve against base dir."""
    layout_path = os.path.join("layouts", "main.pug")
    batch = {
        os.path.join("views", "page.pug"): _record("extends /main.pug"),
        layout_path: _record("html"),
    }
    change_set = _changes(layout_path)

    marked = resolve_dependencies(
        batch, change_set, tmp_path, str(tmp_path / "layouts"), None
    )

    assert marked == {os.path.join("views", "page.pug")}


def test_absolute_reference_defaults_to_source_root(tmp_path: Path) -> None:
    """Without base dir, absolute references resolve against the source root."""
    batch = {"page.pug": _record("include /shared/nav.pug")}
    change_set = _changes(os.path.join("shared", "nav.pug"))

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"page.pug"}


def test_reference_to_removed_file_marks_referrer(tmp_path: Path) -> None:
    """Referencing a deleted file should mark the referrer."""
    batch = {"page.pug": _record("include gone.pug")}
    change_set = ChangeSet()
    change_set.mark_removed("gone.pug")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"page.pug"}


def test_reference_into_modified_directory_marks_referrer(tmp_path: Path) -> None:
    """Referencing a file under a modified directory should mark the referrer."""
    batch = {"page.pug": _record("include mixins/buttons.pug")}
    change_set = ChangeSet()
    change_set.mark_modified_dir("mixins")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == {"page.pug"}


def test_files_without_resolver_are_left_alone(tmp_path: Path) -> None:
    """Files without a resolver should never be marked."""
    batch = {"notes.txt": _record("include parent.pug")}
    change_set = _changes("parent.pug")

    marked = resolve_dependencies(batch, change_set, tmp_path, None, None)

    assert marked == set()


def test_callback_resolver_supplies_references(tmp_path: Path) -> None:
    """Callback resolvers should provide references directly."""

    def _front_matter_layout(record: FileRecord, base_dir: str | None) -> list[str]:
        _ = base_dir
        return [str(record.metadata["layout"])]

    batch = {"post.md": FileRecord(contents=b"# Post", metadata={"layout": "post.html"})}
    change_set = _changes("post.html")

    marked = resolve_dependencies(
        batch, change_set, tmp_path, None, build_resolver_spec(_front_matter_layout)
    )

    assert marked == {"post.md"}


def test_failing_callback_marks_only_that_file(tmp_path: Path) -> None:
    """A raising callback should mark its file modified instead of failing."""

    def _broken(record: FileRecord, base_dir: str | None) -> list[str]:
        raise RuntimeError("boom")

    batch = {
        "post.md": _record("x"),
        "a.md": _record("a"),
        "page.pug": _record("p page"),
    }
    resolver_spec = build_resolver_spec({"md": _broken})

    marked = resolve_dependencies(batch, _changes("a.md"), tmp_path, None, resolver_spec)

    assert marked == {"post.md"}


def test_relative_base_dir_resolves_from_source_root(tmp_path: Path, monkeypatch) -> None:
    """A relative base dir should be taken relative to the source, not the cwd."""
    source = tmp_path / "site"
    source.mkdir()
    monkeypatch.chdir(tmp_path)
    layout_path = os.path.join("layouts", "main.pug")
    batch = {"page.pug": _record("extends /main.pug"), layout_path: _record("html")}
    change_set = _changes(layout_path)

    marked = resolve_dependencies(batch, change_set, source, "layouts", None)

    assert marked == {"page.pug"}
