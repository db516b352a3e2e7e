"""Reference host reading a source tree and writing a build tree.

This module gives Kiln a concrete build engine for the CLI and tests:
every file under ``source`` becomes a batch record, stages run in order,
and the final batch is written under ``destination``.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil

from core.errors import KilnStageError
from core.logging_config import get_logger
from core.types import Batch, BuildCallback, FileRecord
from pipeline.host import Stage, run_stages

_LOGGER = get_logger(__name__)


class LocalPipeline:
    """Filesystem-backed host with an ordered list of stages."""

    def __init__(
        self,
        source: str | Path,
        destination: str | Path | None = None,
        clean: bool = False,
    ) -> None:
        self._source = Path(source).expanduser().resolve()
        self._destination = (
            Path(destination).expanduser().resolve() if destination is not None else None
        )
        self._clean = clean
        self._stages: list[Stage] = []
        self._last_batch: Batch = {}

    @property
    def source(self) -> Path:
        return self._source

    @property
    def destination(self) -> Path | None:
        return self._destination

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    @property
    def last_batch(self) -> Batch:
        """Final batch of the most recent build."""
        return self._last_batch

    def use(self, stage: Stage) -> "LocalPipeline":
        """Append a stage and return the pipeline for chaining."""
        self._stages.append(stage)
        return self

    def read_batch(self) -> Batch:
        """Read every file under the source root into a fresh batch.

        Raises:
            KilnStageError: If the source root does not exist.
        """
        if not self._source.is_dir():
            raise KilnStageError(
                f"Failed to read source at {self._source}: directory does not exist. "
                "Provide an existing source directory."
            )
        batch: Batch = {}
        for file_path in sorted(self._source.rglob("*")):
            if file_path.is_file():
                relative_path = os.path.relpath(file_path, self._source)
                batch[relative_path] = FileRecord(contents=file_path.read_bytes())
        return batch

    def process(self) -> tuple[Batch, KilnStageError | None]:
        """Read the source and run all stages without writing output."""
        batch = self.read_batch()
        failure = run_stages(self._stages, batch, self)
        self._last_batch = batch
        return batch, failure

    def build(self, on_complete: BuildCallback) -> None:
        """Run one full build and report its outcome through ``on_complete``."""
        failure: BaseException | None
        try:
            batch, failure = self.process()
            if failure is None:
                self._write_batch(batch)
        except (KilnStageError, OSError) as error:
            failure = error
        if failure is None:
            _LOGGER.info("build_done", files=len(self._last_batch))
        on_complete(failure)

    def build_sync(self) -> Batch:
        """Run one full build and return its final batch.

        Raises:
            KilnStageError: If a stage fails.
            OSError: If reading or writing files fails.
        """
        outcome: list[BaseException | None] = []
        self.build(outcome.append)
        if outcome and outcome[0] is not None:
            raise outcome[0]
        return self._last_batch

    def _write_batch(self, batch: Batch) -> None:
        if self._destination is None:
            return
        if self._clean and self._destination.exists():
            shutil.rmtree(self._destination)
        for relative_path, record in batch.items():
            output_path = self._destination / relative_path
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(record.contents)
