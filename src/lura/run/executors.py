"""Execution strategies.

Both strategies implement the same algorithm:
1. Spawn the child with stdin closed and stdout/stderr piped
2. Drain both pipes concurrently with each other and with the process wait
3. Join all three activities, whatever their outcome
4. Check the exit status, the drain results and the enforced exit code

ThreadExecutor runs the three activities on OS threads and hands results back
through single-use queues. TaskExecutor runs them as asyncio tasks; its
blocking form goes through the runtime bridge.

There is no timeout or cancellation: once spawned, the child runs to
completion. The child is only killed when the engine itself can no longer
drain it (a worker could not be started, or the awaiting task was cancelled
from outside), so that it can still be reaped.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import subprocess
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import anyio

from .. import runtime
from ..errors import (
    DrainError,
    ExitCodeMissingError,
    JoinError,
    SpawnError,
    StdioHandleMissingError,
    UnexpectedExitCodeError,
)
from .drain import LineDrain, drain_pipe, drain_stream
from .output import Output
from .spec import ExecutionSpec

__all__ = [
    "Executor",
    "TaskExecutor",
    "ThreadExecutor",
]

logger = logging.getLogger(__name__)

STREAMS = ("stdout", "stderr")


class Executor(ABC):
    """Strategy that runs an ExecutionSpec and produces an Output."""

    name = "executor"

    @abstractmethod
    def execute(self, spec: ExecutionSpec) -> Output:
        """Run an ExecutionSpec, blocking the calling thread until it completes."""

    @abstractmethod
    async def execute_async(self, spec: ExecutionSpec) -> Output:
        """Run an ExecutionSpec without blocking the event loop."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _exit_code(returncode: int) -> int:
    # POSIX reports termination by signal N as -N
    if returncode < 0:
        raise ExitCodeMissingError(-returncode)
    return returncode


def _check_drain(stream: str, result: Any) -> str | None:
    if isinstance(result, DrainError):
        raise result
    if isinstance(result, BaseException):
        raise JoinError(stream, f"{type(result).__name__}: {result}") from result
    return result


def _assemble(
    spec: ExecutionSpec,
    code: int,
    stdout: str | None,
    stderr: str | None,
) -> Output:
    if spec.enforce_code is not None and code != spec.enforce_code:
        raise UnexpectedExitCodeError(code, spec.enforce_code)
    return Output(exit_code=code, stdout=stdout, stderr=stderr)


# =============================================================================
# Thread-based execution
# =============================================================================


def _relay(handoff: queue.Queue, fn: Callable[..., Any], *args: Any) -> None:
    """Thread body: deliver fn's result or exception through handoff."""
    try:
        handoff.put((True, fn(*args)))
    except BaseException as e:
        handoff.put((False, e))


class ThreadExecutor(Executor):
    """Run the process wait and each stream drain on dedicated OS threads."""

    name = "thread"

    def execute(self, spec: ExecutionSpec) -> Output:
        process = self._spawn(spec)

        pipes = {"stdout": process.stdout, "stderr": process.stderr}
        workers: dict[str, tuple[threading.Thread, queue.Queue]] = {}
        results: dict[str, Any] = {}
        join_error: JoinError | None = None

        try:
            for stream in STREAMS:
                if pipes[stream] is None:
                    raise StdioHandleMissingError(stream)

            activities: list[tuple[str, Callable[..., Any], tuple[Any, ...]]] = [
                (
                    stream,
                    drain_pipe,
                    (pipes[stream], LineDrain(stream, spec.observers(stream), spec.capture)),
                )
                for stream in STREAMS
            ]
            activities.append(("wait", process.wait, ()))

            for activity, fn, args in activities:
                handoff: queue.Queue[tuple[bool, Any]] = queue.Queue(maxsize=1)
                thread = threading.Thread(
                    target=_relay,
                    args=(handoff, fn, *args),
                    name=f"lura-{activity}-{process.pid}",
                    daemon=True,
                )
                try:
                    thread.start()
                except RuntimeError as e:
                    join_error = JoinError(activity, f"failed to start thread: {e}")
                    logger.debug(f"Could not start {activity} thread pid={process.pid}: {e}")
                    break
                workers[activity] = (thread, handoff)

            if join_error is not None:
                # Nothing can drain the remaining pipes
                self._kill(process)

            for activity, (thread, handoff) in workers.items():
                _, results[activity] = handoff.get()
                thread.join()
        finally:
            self._reap(process)

        if join_error is not None:
            raise join_error

        wait_result = results["wait"]
        if isinstance(wait_result, BaseException):
            raise JoinError("wait", f"{type(wait_result).__name__}: {wait_result}") from wait_result

        logger.debug(f"Subprocess completed pid={process.pid} returncode={wait_result}")

        code = _exit_code(wait_result)
        stdout = _check_drain("stdout", results["stdout"])
        stderr = _check_drain("stderr", results["stderr"])
        return _assemble(spec, code, stdout, stderr)

    async def execute_async(self, spec: ExecutionSpec) -> Output:
        return await anyio.to_thread.run_sync(self.execute, spec)

    def _spawn(self, spec: ExecutionSpec) -> subprocess.Popen:
        try:
            process = subprocess.Popen(
                list(spec.argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **spec.popen_kwargs(),
            )
        except OSError as e:
            raise SpawnError(spec.program, e) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.program} cwd={spec.cwd}"
        )
        return process

    def _kill(self, process: subprocess.Popen) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass

    def _reap(self, process: subprocess.Popen) -> None:
        """Make sure the child has been waited for, then close our pipe ends.

        The kill comes first: closing a pipe blocks while a drain thread is
        still inside read1() on it, and that read only returns at EOF.
        """
        if process.poll() is None:
            logger.debug(f"Killing unfinished subprocess pid={process.pid}")
            self._kill(process)
            process.wait()

        for pipe in (process.stdout, process.stderr):
            if pipe is not None and not pipe.closed:
                pipe.close()


# =============================================================================
# Task-based execution
# =============================================================================


class TaskExecutor(Executor):
    """Run the process wait and each stream drain as asyncio tasks.

    Attributes:
        local: Use block_on_local() instead of block_on() for the blocking
            form. Cheaper, but fails when called from a running event loop.
    """

    name = "task"

    def __init__(self, local: bool = False) -> None:
        self.local = local

    def __repr__(self) -> str:
        return f"TaskExecutor(local={self.local})"

    def execute(self, spec: ExecutionSpec) -> Output:
        if self.local:
            return runtime.block_on_local(self.execute_async, spec)
        return runtime.block_on(self.execute_async, spec)

    async def execute_async(self, spec: ExecutionSpec) -> Output:
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **spec.popen_kwargs(),
            )
        except OSError as e:
            raise SpawnError(spec.program, e) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.program} cwd={spec.cwd}"
        )

        tasks: list[asyncio.Task[Any]] = []
        try:
            streams = {"stdout": process.stdout, "stderr": process.stderr}
            for stream in STREAMS:
                if streams[stream] is None:
                    raise StdioHandleMissingError(stream)

            for stream in STREAMS:
                drain = LineDrain(stream, spec.observers(stream), spec.capture)
                tasks.append(asyncio.create_task(
                    drain_stream(streams[stream], drain, on_abort=lambda: self._kill(process)),
                    name=f"lura-{stream}-{process.pid}",
                ))
            tasks.append(asyncio.create_task(
                process.wait(),
                name=f"lura-wait-{process.pid}",
            ))

            stdout_result, stderr_result, wait_result = await asyncio.gather(
                *tasks, return_exceptions=True
            )
        finally:
            await self._safe_cleanup(process, tasks)

        if isinstance(wait_result, BaseException):
            raise JoinError("wait", f"{type(wait_result).__name__}: {wait_result}") from wait_result

        logger.debug(f"Subprocess completed pid={process.pid} returncode={wait_result}")

        code = _exit_code(wait_result)
        stdout = _check_drain("stdout", stdout_result)
        stderr = _check_drain("stderr", stderr_result)
        return _assemble(spec, code, stdout, stderr)

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass

    async def _safe_cleanup(
        self,
        process: asyncio.subprocess.Process,
        tasks: list[asyncio.Task[Any]],
    ) -> None:
        """Cleanup shielded from cancellation of the awaiting task."""
        try:
            await asyncio.shield(self._do_cleanup(process, tasks))
        except asyncio.CancelledError:
            await self._do_cleanup(process, tasks)
            raise

    async def _do_cleanup(
        self,
        process: asyncio.subprocess.Process,
        tasks: list[asyncio.Task[Any]],
    ) -> None:
        # Only reached with a live child when the caller was cancelled
        # or a handle was missing
        if process.returncode is None:
            logger.debug(f"Killing unfinished subprocess pid={process.pid}")
            self._kill(process)

        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if process.returncode is None:
            await process.wait()
