"""Unit tests for incremental pipeline assembly."""

from __future__ import annotations

from pathlib import Path

from core.plugin_options import PluginOptions
from core.types import Batch, FileRecord
from pipeline.host import stage_display_name
from pipeline.incremental import build_incremental_pipeline


def _compile(batch: Batch, host: object) -> None:
    return None


def test_stages_wrap_slow_stages_in_order(tmp_path: Path) -> None:
    """Filter should run before slow stages and cache after them."""
    incremental = build_incremental_pipeline(tmp_path, None, [_compile])

    names = [stage_display_name(stage) for stage in incremental.pipeline.stages]

    assert names == ["kiln_filter", "_compile", "kiln_cache"]
    assert incremental.watch_stage is None


def test_configured_cache_options_reach_cache_stage(tmp_path: Path) -> None:
    """Cache options should configure the assembled cache stage."""
    options = (
        PluginOptions.from_mapping(
            {"plugin": "cache", "rename": {"pattern": r"\.pug$", "replacement": ".html"}}
        ),
    )
    incremental = build_incremental_pipeline(tmp_path, None, [], options)
    (tmp_path / "a.pug").write_text("p a", encoding="utf-8")
    incremental.session.mark_ready()
    incremental.session.cache.merge({"a.html": FileRecord(contents=b"A")})

    batch = incremental.pipeline.build_sync()

    assert sorted(batch) == ["a.html"]
