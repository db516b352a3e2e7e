"""Stage registry.

Stages are selected by the ``plugin`` option: ``filter`` (default),
``cache`` or ``watch``. All stages built for one pipeline must share
the same session.
"""

from __future__ import annotations

from typing import Callable, Mapping

from core.plugin_options import PluginOptions
from pipeline.host import Stage
from pipeline.session import IncrementalSession
from stages.cache_stage import CacheStage
from stages.filter_stage import FilterStage
from watch.watcher import WatchStage

_STAGE_FACTORIES: dict[str, Callable[[IncrementalSession, PluginOptions], Stage]] = {
    "filter": FilterStage,
    "cache": CacheStage,
    "watch": WatchStage,
}


def make_stage(
    options: PluginOptions | Mapping[str, object],
    session: IncrementalSession,
) -> Stage:
    """Create the stage selected by ``options.plugin``.

    Args:
        options: Normalized options or a raw option mapping.
        session: Session shared by the pipeline's Kiln stages.

    Returns:
        Stage callable.

    Raises:
        KilnConfigError: If a raw option mapping is invalid.
    """
    plugin_options = (
        options if isinstance(options, PluginOptions) else PluginOptions.from_mapping(options)
    )
    return _STAGE_FACTORIES[plugin_options.plugin](session, plugin_options)


def make_incremental_stages(
    session: IncrementalSession,
    options: tuple[PluginOptions, ...],
) -> dict[str, Stage]:
    """Create one stage per configured plugin, keyed by plugin name."""
    return {plugin_options.plugin: make_stage(plugin_options, session) for plugin_options in options}
