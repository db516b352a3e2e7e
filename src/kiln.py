"""Public SDK surface for Kiln.

This module provides a stable import path for host integrations.
It re-exports the stages, session, host helpers and typed models.
"""

from __future__ import annotations

from core.config import KilnConfig
from core.plugin_options import PluginOptions, load_plugin_options
from core.types import ChangeSet, FileRecord, PathParts
from deps.dependency_graph import resolve_dependencies
from deps.resolver_lookup import build_resolver_spec, lookup_resolver
from pipeline.host import Host, run_stages
from pipeline.incremental import IncrementalPipeline, build_incremental_pipeline
from pipeline.local_pipeline import LocalPipeline
from pipeline.session import IncrementalSession
from stages.cache_stage import CacheStage
from stages.filter_stage import FilterStage
from stages.registry import make_stage
from stages.rename import build_rename_rule, resolve_rename
from watch.cycle_driver import CycleDriver
from watch.watcher import SourceWatcher, WatchStage

__all__ = [
    "CacheStage",
    "ChangeSet",
    "CycleDriver",
    "FileRecord",
    "FilterStage",
    "Host",
    "IncrementalPipeline",
    "IncrementalSession",
    "KilnConfig",
    "LocalPipeline",
    "PathParts",
    "PluginOptions",
    "SourceWatcher",
    "WatchStage",
    "build_incremental_pipeline",
    "build_rename_rule",
    "build_resolver_spec",
    "load_plugin_options",
    "lookup_resolver",
    "make_stage",
    "resolve_dependencies",
    "resolve_rename",
    "run_stages",
]
