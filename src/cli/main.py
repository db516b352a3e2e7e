"""Kiln CLI entry points.
This module exposes build, watch and dependency inspection commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import time
from typing import Sequence

from core.config import KilnConfig
from core.errors import KilnError
from core.plugin_options import PluginOptions, load_plugin_options
from core.types import ChangeSet
from deps.dependency_graph import resolve_dependencies
from deps.resolver_lookup import build_resolver_spec
from pipeline.incremental import build_incremental_pipeline
from pipeline.local_pipeline import LocalPipeline
from pipeline.stage_loader import load_stage_file

_WATCH_POLL_SECONDS = 0.5


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="kiln", description="Kiln incremental build CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_build_command(subparsers)
    _add_watch_command(subparsers)
    _add_deps_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Kiln CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = KilnConfig.from_env()
        if args.command == "build":
            return _run_build_command(args)
        if args.command == "watch":
            return _run_watch_command(config, args)
        if args.command == "deps":
            return _run_deps_command(config, args)
    except KilnError as error:
        print(f"error: {error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _run_build_command(args: argparse.Namespace) -> int:
    """Handle build command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    pipeline = LocalPipeline(args.source, args.destination, clean=args.clean)
    for stage in load_stage_file(args.stage_file):
        pipeline.use(stage)
    batch = pipeline.build_sync()
    print(len(batch))
    return 0


def _run_watch_command(config: KilnConfig, args: argparse.Namespace) -> int:
    """Handle watch command.

    Builds once in full, then rebuilds incrementally on every change
    until interrupted.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = _resolve_watch_options(config, args)
    incremental = build_incremental_pipeline(
        args.source,
        args.destination,
        load_stage_file(args.stage_file),
        options,
        watch=True,
    )
    incremental.pipeline.build_sync()
    watcher = incremental.watch_stage.watcher if incremental.watch_stage else None
    try:
        while watcher is not None and watcher.running:
            time.sleep(_WATCH_POLL_SECONDS)
    except KeyboardInterrupt:
        if watcher is not None:
            watcher.stop()
    return 0


def _run_deps_command(config: KilnConfig, args: argparse.Namespace) -> int:
    """Handle deps command.

    Prints every file invalidated through references by the given changes.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    pipeline = LocalPipeline(args.source)
    batch = pipeline.read_batch()
    change_set = ChangeSet()
    for path in args.modified:
        change_set.mark_modified(path)
    for path in args.removed:
        change_set.mark_removed(path)
    base_dir = args.base_dir or (str(config.base_dir) if config.base_dir else None)
    dependents = resolve_dependencies(
        batch,
        change_set,
        pipeline.source,
        base_dir,
        build_resolver_spec(args.dep_resolver),
    )
    for path in sorted(dependents):
        print(path)
    return 0


def _resolve_watch_options(
    config: KilnConfig, args: argparse.Namespace
) -> tuple[PluginOptions, ...]:
    loaded = load_plugin_options(args.options) if args.options else ()
    by_plugin = {plugin_options.plugin: plugin_options for plugin_options in loaded}
    watch_options = by_plugin.get(
        "watch", PluginOptions(plugin="watch", delay_ms=config.debounce_ms)
    )
    if args.delay is not None:
        watch_options = replace(watch_options, delay_ms=args.delay)
    filter_options = by_plugin.get("filter", PluginOptions(plugin="filter"))
    if filter_options.base_dir is None and config.base_dir is not None:
        filter_options = replace(filter_options, base_dir=str(config.base_dir))
    cache_options = by_plugin.get("cache", PluginOptions(plugin="cache"))
    return (watch_options, filter_options, cache_options)


def _add_build_command(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("build", help="Run one full build")
    parser.add_argument("source", help="Source directory")
    parser.add_argument("destination", help="Output directory")
    parser.add_argument("--stage-file", help="Python file defining STAGES or stage")
    parser.add_argument("--clean", action="store_true", help="Empty destination first")


def _add_watch_command(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("watch", help="Build, then rebuild changed files on change")
    parser.add_argument("source", help="Source directory")
    parser.add_argument("destination", help="Output directory")
    parser.add_argument("--stage-file", help="Python file defining STAGES or stage")
    parser.add_argument("--options", help="YAML plugin options file")
    parser.add_argument("--delay", type=int, help="Debounce delay in milliseconds")


def _add_deps_command(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("deps", help="List files invalidated by changed paths")
    parser.add_argument("source", help="Source directory")
    parser.add_argument(
        "--modified", action="append", default=[], help="Modified path, relative to source"
    )
    parser.add_argument(
        "--removed", action="append", default=[], help="Removed path, relative to source"
    )
    parser.add_argument("--dep-resolver", help="Regex with one capture group per reference")
    parser.add_argument("--base-dir", help="Directory for absolute references")
