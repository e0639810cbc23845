"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path (development checkouts)
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from lura.run import Executor, TaskExecutor, ThreadExecutor  # noqa: E402

IS_WINDOWS = sys.platform == "win32"

PythonCommand = Callable[[str], tuple[str, list[str]]]


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def python() -> PythonCommand:
    """Build a (program, args) pair running a Python snippet in a child."""

    def build(code: str) -> tuple[str, list[str]]:
        return sys.executable, ["-c", code]

    return build


@pytest.fixture(params=["thread", "task"])
def executor(request: pytest.FixtureRequest) -> Executor:
    """Each execution strategy in turn."""
    if request.param == "thread":
        return ThreadExecutor()
    return TaskExecutor()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Temporary working directory."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path
