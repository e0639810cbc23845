"""Runtime bridge: drive async code to completion from blocking call sites.

- block_on(): runs the coroutine function on a dedicated thread with its own
  event loop, so it also works while an event loop is already running on
  the calling thread.
- block_on_local(): runs on the calling thread. Cheaper, but refuses to run
  when the calling thread already has a running event loop.

Both return the coroutine's result and re-raise its exception unchanged.
Faults of the bridge itself are raised as BridgeError.

The two differ for BaseExceptions that are not Exceptions (SystemExit,
KeyboardInterrupt): block_on() reports them as BridgeError, since they end
the runtime thread rather than the caller's. block_on_local() lets them
propagate as raised, because they already belong to the calling thread.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import anyio

from .errors import BridgeError

__all__ = [
    "BridgeError",
    "block_on",
    "block_on_local",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BACKEND = "asyncio"


def block_on(
    async_fn: Callable[..., Awaitable[T]],
    *args: Any,
    backend: str = DEFAULT_BACKEND,
) -> T:
    """Run async_fn(*args) to completion on a separate thread.

    Args:
        async_fn: Coroutine function to run
        *args: Positional arguments for async_fn
        backend: anyio backend name

    Returns:
        The value returned by async_fn

    Raises:
        BridgeError: If the runtime thread could not be started, exited
            without delivering a result, or died from a non-Exception
            BaseException (e.g. SystemExit)
    """
    handoff: queue.Queue[tuple[bool, Any]] = queue.Queue(maxsize=1)

    def target() -> None:
        try:
            handoff.put((True, anyio.run(async_fn, *args, backend=backend)))
        except BaseException as e:
            handoff.put((False, e))

    thread = threading.Thread(
        target=target,
        name=f"lura-block-on-{getattr(async_fn, '__name__', 'task')}",
        daemon=True,
    )
    try:
        thread.start()
    except RuntimeError as e:
        raise BridgeError(f"Failed to start runtime thread: {e}") from e

    thread.join()

    try:
        ok, value = handoff.get_nowait()
    except queue.Empty as e:
        raise BridgeError("Runtime thread exited without a result") from e

    if ok:
        return value
    if isinstance(value, Exception):
        raise value
    logger.debug(f"Runtime thread died with {type(value).__name__}")
    raise BridgeError(f"Runtime thread died with {type(value).__name__}: {value}") from value


def block_on_local(
    async_fn: Callable[..., Awaitable[T]],
    *args: Any,
    backend: str = DEFAULT_BACKEND,
) -> T:
    """Run async_fn(*args) to completion on the calling thread.

    Args:
        async_fn: Coroutine function to run
        *args: Positional arguments for async_fn
        backend: anyio backend name

    Returns:
        The value returned by async_fn

    Raises:
        BridgeError: If an event loop is already running on this thread

    SystemExit and KeyboardInterrupt raised by async_fn propagate unchanged.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise BridgeError(
            "block_on_local() cannot be called from a running event loop, "
            "use block_on() instead"
        )

    return anyio.run(async_fn, *args, backend=backend)
