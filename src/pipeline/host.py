"""Host pipeline contract and stage execution.

Kiln does not own the build engine. A host exposes its source root and a
full-build entry point; stages are callables over the shared batch.
"""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path
from typing import Any, Awaitable, Protocol, Sequence

from core.errors import KilnStageError
from core.logging_config import get_logger
from core.types import Batch, BuildCallback

_LOGGER = get_logger(__name__)


class Host(Protocol):
    """Build engine driven by Kiln's watcher."""

    @property
    def source(self) -> Path:
        """Absolute source root that batch paths are relative to."""
        ...

    def build(self, on_complete: BuildCallback) -> None:
        """Run one full build and report its outcome through ``on_complete``."""
        ...


class Stage(Protocol):
    """One transformation applied to the batch."""

    def __call__(self, batch: Batch, host: Host) -> Awaitable[None] | None:
        ...


def run_stages(stages: Sequence[Stage], batch: Batch, host: Host) -> KilnStageError | None:
    """Run stages in order and convert the first failure into an error value.

    After a failure, only stages flagged ``runs_after_failure`` still run,
    so cache restoration completes the cycle.

    Args:
        stages: Ordered stages of the pipeline.
        batch: Batch mutated in place.
        host: Host passed to each stage.

    Returns:
        The first stage failure, or None when every stage succeeded.
    """
    failure: KilnStageError | None = None
    for stage in stages:
        if failure is not None and not getattr(stage, "runs_after_failure", False):
            continue
        try:
            run_stage(stage, batch, host)
        except Exception as error:
            stage_name = stage_display_name(stage)
            _LOGGER.error("stage_failed", stage=stage_name, error=str(error))
            if failure is None:
                failure = KilnStageError(f"Stage '{stage_name}' failed: {error}")
                failure.__cause__ = error
    return failure


def run_stage(stage: Stage, batch: Batch, host: Host) -> None:
    """Run one stage, waiting for completion when it is asynchronous.

    Raises:
        KilnStageError: If an asynchronous stage is run while an event loop
            is already running in this thread.
    """
    result = stage(batch, host)
    if not inspect.isawaitable(result):
        return
    if _has_running_loop():
        if inspect.iscoroutine(result):
            result.close()
        raise KilnStageError(
            f"Cannot run async stage '{stage_display_name(stage)}' inside a running event loop. "
            "Call build() from a worker thread, for example with asyncio.to_thread."
        )
    asyncio.run(_await_result(result))


def stage_display_name(stage: Any) -> str:
    return str(getattr(stage, "name", None) or getattr(stage, "__name__", type(stage).__name__))


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


async def _await_result(result: Awaitable[None]) -> None:
    await result
