"""Execution snapshot handed from a Runner to an Executor."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

__all__ = [
    "ExecutionSpec",
    "LineObserver",
    "build_env",
]

# Callback invoked once per output line, newline stripped
LineObserver = Callable[[str], None]


def build_env(
    clear: bool,
    remove: Iterable[str],
    overrides: Mapping[str, str],
    base: Mapping[str, str] | None = None,
) -> dict[str, str] | None:
    """Build the child environment.

    Order is inherit (unless cleared) -> remove -> set. Removal only applies
    to an inherited environment.

    Args:
        clear: Start from an empty environment
        remove: Names to strip from the inherited environment
        overrides: Names to add or override
        base: Environment to inherit from (defaults to os.environ)

    Returns:
        The environment mapping, or None when the child should inherit the
        parent environment untouched
    """
    remove = list(remove)
    if not clear and not remove and not overrides:
        return None

    if clear:
        env: dict[str, str] = {}
    else:
        env = dict(os.environ if base is None else base)
        for name in remove:
            env.pop(name, None)

    env.update(overrides)
    return env


@dataclass(frozen=True)
class ExecutionSpec:
    """Read-only configuration for one execution.

    Attributes:
        argv: Program followed by its arguments
        cwd: Working directory (None = inherit)
        env: Environment variables (None = inherit parent)
        stdout_observers: Callbacks for stdout lines, in registration order
        stderr_observers: Callbacks for stderr lines, in registration order
        enforce_code: Expected exit code, None disables enforcement
        capture: Whether to buffer stream text into the Output
    """

    argv: tuple[str, ...]
    cwd: str | None = None
    env: Mapping[str, str] | None = None
    stdout_observers: tuple[LineObserver, ...] = ()
    stderr_observers: tuple[LineObserver, ...] = ()
    enforce_code: int | None = None
    capture: bool = False

    @property
    def program(self) -> str:
        return self.argv[0]

    def popen_kwargs(self) -> dict[str, Any]:
        """Keyword arguments shared by subprocess.Popen and asyncio."""
        kwargs: dict[str, Any] = {}
        if self.cwd is not None:
            kwargs["cwd"] = self.cwd
        if self.env is not None:
            kwargs["env"] = dict(self.env)
        return kwargs

    def observers(self, stream: str) -> tuple[LineObserver, ...]:
        return self.stdout_observers if stream == "stdout" else self.stderr_observers
