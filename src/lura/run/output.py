"""Result of running a command."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Output"]


@dataclass(frozen=True)
class Output:
    """Immutable result of one execution.

    Attributes:
        exit_code: Exit code of the child process
        stdout: Captured standard output, None unless capture was enabled
        stderr: Captured standard error, None unless capture was enabled
    """

    exit_code: int
    stdout: str | None = None
    stderr: str | None = None

    @property
    def zero(self) -> bool:
        """Whether the child exited with code 0."""
        return self.exit_code == 0
