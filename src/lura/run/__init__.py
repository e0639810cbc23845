"""Subprocess execution engine.

Convenience functions use a Runner preset by runner():

- exit code 0 is enforced
- stdout and stderr lines are logged at INFO on the `lura.run.out` and
  `lura.run.err` loggers
- run() and sh() additionally capture both streams
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable

from ..errors import (
    DrainError,
    ExitCodeMissingError,
    JoinError,
    RunError,
    ShellMissingError,
    SpawnError,
    StdioHandleMissingError,
    UnexpectedExitCodeError,
)
from .executors import Executor, TaskExecutor, ThreadExecutor
from .output import Output
from .runner import Runner, StrPath
from .spec import ExecutionSpec, LineObserver

__all__ = [
    "DrainError",
    "ExecutionSpec",
    "Executor",
    "ExitCodeMissingError",
    "JoinError",
    "LineObserver",
    "Output",
    "RunError",
    "Runner",
    "SHELLS",
    "ShellMissingError",
    "SpawnError",
    "StdioHandleMissingError",
    "TaskExecutor",
    "ThreadExecutor",
    "UnexpectedExitCodeError",
    "find_shell",
    "run",
    "run_async",
    "runner",
    "sh",
    "sh_async",
]

# Shells tried by sh(), in order of preference
SHELLS = ("bash", "sh")

stdout_logger = logging.getLogger("lura.run.out")
stderr_logger = logging.getLogger("lura.run.err")


def _log_stdout(line: str) -> None:
    stdout_logger.info(line)


def _log_stderr(line: str) -> None:
    stderr_logger.info(line)


def runner(executor: Executor | None = None) -> Runner:
    """Return a Runner that enforces exit code 0 and logs every line."""
    return (
        Runner(executor)
        .enforce(True)
        .receive_stdout(_log_stdout)
        .receive_stderr(_log_stderr)
    )


def find_shell() -> str:
    """Return the first available shell from SHELLS.

    Raises:
        ShellMissingError: If none of them is in $PATH
    """
    for shell in SHELLS:
        if shutil.which(shell) is not None:
            return shell
    raise ShellMissingError(SHELLS)


def run(program: StrPath, args: Iterable[StrPath] = ()) -> Output:
    """Run a command with the default runner, capturing its output."""
    return runner().capture(True).execute(program, args)


async def run_async(program: StrPath, args: Iterable[StrPath] = ()) -> Output:
    """Async form of run(), executed on asyncio tasks."""
    return await runner(TaskExecutor()).capture(True).execute_async(program, args)


def sh(command: str) -> Output:
    """Run a command line through bash, or sh when bash is unavailable."""
    return run(find_shell(), ["-c", command])


async def sh_async(command: str) -> Output:
    """Async form of sh()."""
    return await run_async(find_shell(), ["-c", command])
