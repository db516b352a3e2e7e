"""Pytest configuration and shared fixtures for repository test runs."""

from __future__ import annotations

from dataclasses import dataclass, field
import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@dataclass
class StaticHost:
    """Host stub that records build requests and reports success."""

    source: Path
    builds: int = 0
    outcomes: list[object] = field(default_factory=list)

    def build(self, on_complete) -> None:
        self.builds += 1
        on_complete(None)


@pytest.fixture
def static_host(tmp_path: Path) -> StaticHost:
    """Host rooted at the test's temporary directory."""
    return StaticHost(source=tmp_path)
