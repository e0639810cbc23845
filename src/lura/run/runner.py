"""Runner: reusable subprocess execution configuration.

A Runner is a builder similar to subprocess.Popen's keyword arguments:

- it can be configured once and executed many times
- it can raise on an unexpected exit code
- it can capture stdout and stderr into the returned Output
- it can dispatch lines to observers as they are read
- it can execute blocking or async, on threads or on asyncio tasks

Example:
    runner = (
        Runner()
        .cwd("/tmp")
        .env({"LANG": "C"})
        .receive_stdout(print)
        .enforce_code(0)
        .capture(True)
    )
    output = runner.execute("ls", ["-l"])
    output = await runner.execute_async("ls", ["-l"])

Configuration is snapshotted when execute() is called. A Runner must not be
mutated while one of its executions is in flight.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Iterable, Mapping
from typing import Union

from .executors import Executor, ThreadExecutor
from .output import Output
from .spec import ExecutionSpec, LineObserver, build_env

__all__ = ["Runner"]

StrPath = Union[str, "os.PathLike[str]"]


class Runner:
    """Subprocess executor configuration.

    Attributes:
        working_dir: Working directory for the child (None = inherit)
        env_cleared: Whether the child starts from an empty environment
        env_removed: Names removed from the inherited environment
        env_vars: Names added to or overridden in the environment
        stdout_observers: Callbacks receiving stdout lines
        stderr_observers: Callbacks receiving stderr lines
        expected_code: Enforced exit code (None = no enforcement)
        capturing: Whether Output carries the captured text
        strategy: Executor used by execute() and execute_async()
    """

    def __init__(self, executor: Executor | None = None) -> None:
        self.working_dir: str | None = None
        self.env_cleared = False
        self.env_removed: set[str] = set()
        self.env_vars: dict[str, str] = {}
        self.stdout_observers: list[LineObserver] = []
        self.stderr_observers: list[LineObserver] = []
        self.expected_code: int | None = None
        self.capturing = False
        self.strategy: Executor = executor if executor is not None else ThreadExecutor()

    def __repr__(self) -> str:
        return (
            f"Runner(cwd={self.working_dir}, "
            f"env_clear={self.env_cleared}, "
            f"env_remove={sorted(self.env_removed)}, "
            f"env={sorted(self.env_vars)}, "
            f"stdout_observers={len(self.stdout_observers)}, "
            f"stderr_observers={len(self.stderr_observers)}, "
            f"enforce_code={self.expected_code}, "
            f"capture={self.capturing}, "
            f"executor={self.strategy!r})"
        )

    # -------------------------------------------------------------------------
    # Builder
    # -------------------------------------------------------------------------

    def cwd(self, path: StrPath | None) -> Runner:
        """Set the working directory (None = inherit)."""
        self.working_dir = os.fspath(path) if path is not None else None
        return self

    def env_clear(self) -> Runner:
        """Start the child from an empty environment."""
        self.env_cleared = True
        return self

    def env_remove(self, name: str) -> Runner:
        """Remove a variable from the inherited environment."""
        self.env_removed.add(name)
        return self

    def env(self, variables: Mapping[str, str] | Iterable[tuple[str, str]] = (), **kwargs: str) -> Runner:
        """Set environment variables; later values for a name win.

        Args:
            variables: Mapping or iterable of (name, value) pairs
            **kwargs: Additional name=value pairs
        """
        items = variables.items() if isinstance(variables, Mapping) else variables
        for name, value in items:
            self.env_vars[str(name)] = str(value)
        for name, value in kwargs.items():
            self.env_vars[name] = str(value)
        return self

    def receive_stdout(self, observer: LineObserver) -> Runner:
        """Add a callback receiving each stdout line."""
        self.stdout_observers.append(observer)
        return self

    def receive_stderr(self, observer: LineObserver) -> Runner:
        """Add a callback receiving each stderr line."""
        self.stderr_observers.append(observer)
        return self

    def enforce_code(self, code: int | None) -> Runner:
        """Raise UnexpectedExitCodeError unless the exit code equals `code`.

        None disables enforcement.
        """
        self.expected_code = code
        return self

    def enforce(self, value: bool) -> Runner:
        """Shorthand: enforce exit code 0 (True) or disable enforcement (False)."""
        self.expected_code = 0 if value else None
        return self

    def capture(self, value: bool) -> Runner:
        """Capture stdout and stderr into the returned Output."""
        self.capturing = value
        return self

    def executor(self, executor: Executor) -> Runner:
        """Select the execution strategy."""
        self.strategy = executor
        return self

    def copy(self) -> Runner:
        """Return an independent copy of this configuration."""
        clone = copy.copy(self)
        clone.env_removed = set(self.env_removed)
        clone.env_vars = dict(self.env_vars)
        clone.stdout_observers = list(self.stdout_observers)
        clone.stderr_observers = list(self.stderr_observers)
        return clone

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def snapshot(self, program: StrPath, args: Iterable[StrPath] = ()) -> ExecutionSpec:
        """Freeze the current configuration for one execution."""
        return ExecutionSpec(
            argv=(os.fspath(program), *(os.fspath(arg) for arg in args)),
            cwd=self.working_dir,
            env=build_env(self.env_cleared, self.env_removed, self.env_vars),
            stdout_observers=tuple(self.stdout_observers),
            stderr_observers=tuple(self.stderr_observers),
            enforce_code=self.expected_code,
            capture=self.capturing,
        )

    def execute(self, program: StrPath, args: Iterable[StrPath] = ()) -> Output:
        """Run `program` with `args`, blocking until it exits.

        Returns:
            Output with the exit code and, when capturing, the stream text

        Raises:
            RunError: Any of the errors in lura.errors
        """
        return self.strategy.execute(self.snapshot(program, args))

    async def execute_async(self, program: StrPath, args: Iterable[StrPath] = ()) -> Output:
        """Async form of execute()."""
        return await self.strategy.execute_async(self.snapshot(program, args))
