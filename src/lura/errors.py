"""Exceptions raised by the run engine and the runtime bridge.

Every failure of a single execution is raised as a subclass of RunError.
Nothing is retried internally and no partial Output is returned.
"""

from __future__ import annotations

__all__ = [
    "RunError",
    "SpawnError",
    "StdioHandleMissingError",
    "ExitCodeMissingError",
    "UnexpectedExitCodeError",
    "DrainError",
    "JoinError",
    "ShellMissingError",
    "BridgeError",
]


class RunError(Exception):
    """Base class for subprocess execution errors."""
    pass


class SpawnError(RunError):
    """The OS refused to create the child process.

    Attributes:
        program: Program that was being launched
        os_error: Underlying OSError from the spawn call
    """

    def __init__(self, program: str, os_error: OSError) -> None:
        self.program = program
        self.os_error = os_error
        super().__init__(f"Failed to spawn `{program}`: {os_error}")


class StdioHandleMissingError(RunError):
    """A pipe read-end was not available after spawn.

    Attributes:
        stream: "stdout" or "stderr"
    """

    def __init__(self, stream: str) -> None:
        self.stream = stream
        super().__init__(f"Child process missing stdio file handle: `{stream}`")


class ExitCodeMissingError(RunError):
    """The child terminated without a normal exit status.

    Attributes:
        signal: Number of the signal that terminated the child, if known
    """

    def __init__(self, signal: int | None = None) -> None:
        self.signal = signal
        if signal is None:
            message = "Child process returned no exit code"
        else:
            message = f"Child process returned no exit code (killed by signal {signal})"
        super().__init__(message)


class UnexpectedExitCodeError(RunError):
    """The child exited normally with a code other than the enforced one.

    Attributes:
        code: Observed exit code
        expected: Enforced exit code
    """

    def __init__(self, code: int, expected: int | None = None) -> None:
        self.code = code
        self.expected = expected
        super().__init__(f"Command exited with unexpected status code `{code}`")


class DrainError(RunError):
    """An output stream could not be read, decoded or dispatched.

    Attributes:
        stream: "stdout" or "stderr"
    """

    def __init__(self, stream: str, reason: str) -> None:
        self.stream = stream
        self.reason = reason
        super().__init__(f"Failed to drain `{stream}`: {reason}")


class JoinError(RunError):
    """A worker thread or task could not be started or joined.

    Attributes:
        activity: "stdout", "stderr" or "wait"
    """

    def __init__(self, activity: str, reason: str = "") -> None:
        self.activity = activity
        self.reason = reason
        message = f"Failed to join {activity} worker"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ShellMissingError(RunError):
    """None of the supported shells were found in $PATH."""

    def __init__(self, shells: tuple[str, ...] = ("bash", "sh")) -> None:
        self.shells = shells
        super().__init__(f"None of {', '.join(shells)} were found in $PATH")


class BridgeError(RunError):
    """The runtime bridge failed to drive an operation to completion."""
    pass
