"""Typed plugin options for the filter, cache and watch stages.

This module validates option mappings passed from Python code and loads
YAML options files, so every stage consumes one normalized options object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Sequence, cast

import yaml

from core.constants import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_PLUGIN,
    DEFAULT_PROPERTY_PATHS,
    OPTIONS_FILE_VERSION,
    SUPPORTED_PLUGINS,
)
from core.errors import KilnConfigError
from core.logging_config import get_logger
from deps.resolver_lookup import ResolverSpec, build_resolver_spec
from stages.rename import RenameRule, build_rename_rule

PluginName = Literal["filter", "cache", "watch"]
PropertyPath = tuple[str, ...]

_KEY_ALIASES = {
    "plugin": "plugin",
    "baseDir": "base_dir",
    "base_dir": "base_dir",
    "depResolver": "dep_resolver",
    "dep_resolver": "dep_resolver",
    "rename": "rename",
    "props": "properties",
    "properties": "properties",
    "paths": "paths",
    "delay": "delay",
}
_SUPPORTED_ROOT_KEYS = {"version", "plugins"}

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PluginOptions:
    """Normalized options for one Kiln stage.

    Attributes:
        plugin: Selected stage, ``filter``, ``cache`` or ``watch``.
        base_dir: Directory used for absolute dependency references.
        dep_resolver: Dependency resolver spec for the filter stage.
        rename: Rename rule for the cache stage.
        properties: Field paths copied from cached snapshots on restore.
        paths: Force-rebuild glob map, source glob to target glob.
        delay_ms: Watcher debounce delay in milliseconds.
    """

    plugin: PluginName = cast(PluginName, DEFAULT_PLUGIN)
    base_dir: str | None = None
    dep_resolver: ResolverSpec = None
    rename: RenameRule = None
    properties: tuple[PropertyPath, ...] = DEFAULT_PROPERTY_PATHS
    paths: Mapping[str, str] = field(default_factory=dict)
    delay_ms: int = DEFAULT_DEBOUNCE_MS

    @classmethod
    def from_mapping(cls, raw_options: Mapping[str, object]) -> "PluginOptions":
        """Build options from a user mapping.

        Unknown keys are ignored and an unknown plugin falls back to
        ``filter``, each with a warning.

        Args:
            raw_options: Mapping using camelCase or snake_case keys.

        Returns:
            Normalized plugin options.

        Raises:
            KilnConfigError: If values have invalid structure.
        """
        values: dict[str, object] = {}
        for key, value in raw_options.items():
            canonical = _KEY_ALIASES.get(str(key))
            if canonical is None:
                _LOGGER.warning("plugin_option_ignored", key=str(key))
                continue
            values[canonical] = value
        return cls(
            plugin=_parse_plugin(values.get("plugin")),
            base_dir=_parse_base_dir(values.get("base_dir")),
            dep_resolver=build_resolver_spec(values.get("dep_resolver")),
            rename=build_rename_rule(values.get("rename")),
            properties=parse_property_paths(values.get("properties")),
            paths=parse_force_paths(values.get("paths")),
            delay_ms=_parse_delay(values.get("delay")),
        )


def load_plugin_options(options_path: str) -> tuple[PluginOptions, ...]:
    """Load and validate a YAML plugin options file.

    Args:
        options_path: Path to a YAML file with ``version`` and ``plugins``.

    Returns:
        Options for every configured plugin, in file order.

    Raises:
        KilnConfigError: If the file is missing, unreadable or invalid.
    """
    payload = _load_yaml_payload(options_path)
    root_mapping = _expect_mapping(payload, "options file root")
    unknown_keys = sorted(set(root_mapping) - _SUPPORTED_ROOT_KEYS)
    if unknown_keys:
        raise KilnConfigError(
            f"Unsupported options file keys: {', '.join(unknown_keys)}. "
            "Use only 'version' and 'plugins'."
        )
    version = root_mapping.get("version")
    if version != OPTIONS_FILE_VERSION:
        raise KilnConfigError(
            f"Unsupported options file version {version!r}. Use version: {OPTIONS_FILE_VERSION}."
        )
    raw_plugins = _expect_sequence(root_mapping.get("plugins"), "options file 'plugins'")
    return tuple(
        PluginOptions.from_mapping(_expect_plugin_mapping(raw_plugin, f"plugins[{index}]"))
        for index, raw_plugin in enumerate(raw_plugins)
    )


def parse_property_paths(raw_value: object) -> tuple[PropertyPath, ...]:
    """Normalize the property-copy option into explicit field paths.

    A string is one top-level field; a list holds strings (top-level fields)
    or lists of strings (nested field paths).
    """
    if raw_value is None:
        return DEFAULT_PROPERTY_PATHS
    if isinstance(raw_value, str):
        return ((raw_value,),)
    entries = _expect_sequence(raw_value, "plugin option 'props'")
    property_paths: list[PropertyPath] = []
    for entry in entries:
        if isinstance(entry, str):
            property_paths.append((entry,))
            continue
        segments = _expect_sequence(entry, "plugin option 'props' entry")
        if not segments or not all(isinstance(segment, str) for segment in segments):
            raise KilnConfigError(
                "Invalid plugin option 'props': nested entries must be non-empty lists of strings."
            )
        property_paths.append(tuple(cast(Sequence[str], segments)))
    return tuple(property_paths)


def parse_force_paths(raw_value: object) -> dict[str, str]:
    """Normalize the force-rebuild glob map.

    A single string is shorthand for ``{glob: glob}``.
    """
    if raw_value is None:
        return {}
    if isinstance(raw_value, str):
        return {raw_value: raw_value}
    mapping = _expect_mapping(raw_value, "plugin option 'paths'")
    force_paths: dict[str, str] = {}
    for source_glob, target_glob in mapping.items():
        if not isinstance(target_glob, str):
            raise KilnConfigError(
                f"Invalid plugin option 'paths': target for '{source_glob}' must be a glob string."
            )
        force_paths[source_glob] = target_glob
    return force_paths


def _parse_plugin(raw_value: object) -> PluginName:
    if raw_value is None:
        return cast(PluginName, DEFAULT_PLUGIN)
    if raw_value not in SUPPORTED_PLUGINS:
        _LOGGER.warning("plugin_unknown", plugin=str(raw_value), fallback=DEFAULT_PLUGIN)
        return cast(PluginName, DEFAULT_PLUGIN)
    return cast(PluginName, raw_value)


def _parse_base_dir(raw_value: object) -> str | None:
    if raw_value is None:
        return None
    if isinstance(raw_value, (str, Path)):
        return str(raw_value)
    raise KilnConfigError(
        f"Invalid plugin option 'baseDir': expected path string, got {type(raw_value).__name__}."
    )


def _parse_delay(raw_value: object) -> int:
    if isinstance(raw_value, bool) or not isinstance(raw_value, (int, float)):
        return DEFAULT_DEBOUNCE_MS
    if raw_value < 0:
        return DEFAULT_DEBOUNCE_MS
    return int(raw_value)


def _load_yaml_payload(options_path: str) -> object:
    options_file = Path(options_path).expanduser().resolve()
    if not options_file.exists():
        raise KilnConfigError(
            f"Options file does not exist at {options_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(options_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise KilnConfigError(
            f"Failed to read options file at {options_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise KilnConfigError(
            f"Failed to parse YAML options at {options_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise KilnConfigError(
            f"Options file at {options_file} is empty. Define 'version' and 'plugins'."
        )
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise KilnConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise KilnConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_plugin_mapping(value: object, context: str) -> Mapping[str, object]:
    mapping = _expect_mapping(value, context)
    unknown_keys = sorted(set(mapping) - set(_KEY_ALIASES))
    if unknown_keys:
        supported = ", ".join(sorted(_KEY_ALIASES))
        raise KilnConfigError(
            f"Unsupported plugin option(s) {', '.join(unknown_keys)} in {context}. "
            f"Supported options: {supported}."
        )
    plugin = mapping.get("plugin")
    if plugin is not None and plugin not in SUPPORTED_PLUGINS:
        raise KilnConfigError(
            f"Unsupported plugin {plugin!r} in {context}. "
            f"Use one of: {', '.join(SUPPORTED_PLUGINS)}."
        )
    return mapping


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise KilnConfigError(f"Invalid {context}: expected list, got {type(value).__name__}.")
