"""Runtime configuration model for Kiln.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_DEBOUNCE_MS
from core.errors import KilnConfigError


@dataclass(frozen=True)
class KilnConfig:
    """Validated runtime configuration.

    Attributes:
        debounce_ms: Quiet interval before the watcher triggers a rebuild.
        base_dir: Optional directory for absolute dependency references.
    """

    debounce_ms: int
    base_dir: Path | None

    @classmethod
    def from_env(cls) -> "KilnConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            KilnConfigError: If environment values are invalid.
        """
        debounce_value = os.getenv("KILN_DEBOUNCE_MS", str(DEFAULT_DEBOUNCE_MS))
        base_dir_value = os.getenv("KILN_BASE_DIR")
        return cls(
            debounce_ms=_parse_debounce_ms(debounce_value),
            base_dir=Path(base_dir_value).expanduser().resolve() if base_dir_value else None,
        )


def _parse_debounce_ms(raw_value: str) -> int:
    """Parse the debounce delay environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed non-negative delay in milliseconds.

    Raises:
        KilnConfigError: If value is not a non-negative integer.
    """
    try:
        parsed = int(raw_value)
    except ValueError as error:
        raise KilnConfigError(
            "Invalid KILN_DEBOUNCE_MS value: "
            f"expected integer, got '{raw_value}'. "
            "Set KILN_DEBOUNCE_MS to a number of milliseconds."
        ) from error
    if parsed < 0:
        raise KilnConfigError(
            f"Invalid KILN_DEBOUNCE_MS value {parsed}: delay cannot be negative."
        )
    return parsed
