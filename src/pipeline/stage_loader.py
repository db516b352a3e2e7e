"""Loading of user slow stages from a Python file.

A stage file defines either a ``STAGES`` list of callables or a single
``stage`` callable. Each callable receives ``(batch, host)``.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Any, cast

from core.errors import KilnConfigError
from pipeline.host import Stage


def load_stage_file(stage_path: str | None) -> list[Stage]:
    """Load slow stages from an optional Python module path.

    Args:
        stage_path: Path to the stage file, or None for no slow stages.

    Returns:
        Ordered stage callables.

    Raises:
        KilnConfigError: If the file is missing or defines no valid stages.
    """
    if stage_path is None:
        return []
    resolved_path = Path(stage_path).expanduser().resolve()
    if not resolved_path.exists():
        raise KilnConfigError(
            f"Stage file not found at {resolved_path}. Provide a valid --stage-file path."
        )
    module = _load_python_module(resolved_path)
    raw_stages = getattr(module, "STAGES", None)
    if raw_stages is None:
        single_stage = getattr(module, "stage", None)
        raw_stages = [] if single_stage is None else [single_stage]
    if not isinstance(raw_stages, (list, tuple)) or not raw_stages:
        raise KilnConfigError(
            f"Invalid stage file {resolved_path}: define a STAGES list or a 'stage' function."
        )
    for index, candidate in enumerate(raw_stages):
        if not callable(candidate):
            raise KilnConfigError(
                f"Invalid stage file {resolved_path}: STAGES[{index}] is not callable."
            )
    return [cast(Stage, candidate) for candidate in raw_stages]


def _load_python_module(module_path: Path) -> Any:
    spec = importlib.util.spec_from_file_location("kiln_user_stages", str(module_path))
    if spec is None or spec.loader is None:
        raise KilnConfigError(
            f"Failed to load stage module at {module_path}. Verify file path and syntax."
        )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
