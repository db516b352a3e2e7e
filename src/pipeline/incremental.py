"""Assembly of incremental local pipelines.

The Kiln stages wrap the slow stages: the watch stage first, then the
filter, the slow stages, and the cache stage last.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from core.plugin_options import PluginOptions
from pipeline.host import Stage
from pipeline.local_pipeline import LocalPipeline
from pipeline.session import IncrementalSession
from stages.registry import make_incremental_stages
from watch.watcher import WatchStage


@dataclass(frozen=True)
class IncrementalPipeline:
    """Local pipeline wired with Kiln stages sharing one session."""

    pipeline: LocalPipeline
    session: IncrementalSession
    watch_stage: WatchStage | None


def build_incremental_pipeline(
    source: str | Path,
    destination: str | Path | None,
    slow_stages: Sequence[Stage],
    options: Iterable[PluginOptions] = (),
    watch: bool = False,
) -> IncrementalPipeline:
    """Create a local pipeline that skips unchanged files through slow stages.

    Args:
        source: Source directory read on every build.
        destination: Output directory, or None to keep results in memory.
        slow_stages: Stages whose work is skipped for unchanged files.
        options: Plugin options; missing plugins use default options.
        watch: Whether to start a watcher on the first build.

    Returns:
        Wired pipeline, its session and the watch stage when requested.
    """
    by_plugin = {plugin_options.plugin: plugin_options for plugin_options in options}
    session = IncrementalSession()
    pipeline = LocalPipeline(source, destination)
    watch_stage: WatchStage | None = None
    if watch:
        watch_stage = WatchStage(session, by_plugin.get("watch", PluginOptions(plugin="watch")))
        pipeline.use(watch_stage)
    kiln_stages = make_incremental_stages(
        session,
        (
            by_plugin.get("filter", PluginOptions(plugin="filter")),
            by_plugin.get("cache", PluginOptions(plugin="cache")),
        ),
    )
    pipeline.use(kiln_stages["filter"])
    for stage in slow_stages:
        pipeline.use(stage)
    pipeline.use(kiln_stages["cache"])
    return IncrementalPipeline(pipeline=pipeline, session=session, watch_stage=watch_stage)
