"""Runtime bridge tests."""

from __future__ import annotations

import threading
from unittest import mock

import anyio
import pytest

from lura import runtime
from lura.errors import BridgeError
from lura.runtime import block_on, block_on_local


async def add(a: int, b: int) -> int:
    await anyio.sleep(0)
    return a + b


async def fail() -> None:
    await anyio.sleep(0)
    raise ValueError("inner failure")


async def current_thread_name() -> str:
    return threading.current_thread().name


class TestBlockOn:
    """Test block_on(), which runs on a dedicated thread."""

    def test_returns_result(self):
        assert block_on(add, 1, 2) == 3

    def test_runs_on_other_thread(self):
        name = block_on(current_thread_name)

        assert name != threading.current_thread().name
        assert name.startswith("lura-block-on-")

    def test_propagates_exception_unchanged(self):
        with pytest.raises(ValueError, match="inner failure"):
            block_on(fail)

    @pytest.mark.asyncio
    async def test_inside_running_loop(self):
        assert block_on(add, 20, 22) == 42

    def test_system_exit_becomes_bridge_error(self):
        async def exit_now() -> None:
            raise SystemExit(3)

        with pytest.raises(BridgeError) as exc_info:
            block_on(exit_now)

        assert isinstance(exc_info.value.__cause__, SystemExit)

    def test_thread_start_failure(self):
        with mock.patch.object(
            runtime.threading.Thread,
            "start",
            side_effect=RuntimeError("can't start new thread"),
        ):
            with pytest.raises(BridgeError, match="Failed to start runtime thread"):
                block_on(add, 1, 1)


class TestBlockOnLocal:
    """Test block_on_local(), which runs on the calling thread."""

    def test_returns_result(self):
        assert block_on_local(add, 2, 3) == 5

    def test_runs_on_calling_thread(self):
        assert block_on_local(current_thread_name) == threading.current_thread().name

    def test_propagates_exception_unchanged(self):
        with pytest.raises(ValueError, match="inner failure"):
            block_on_local(fail)

    def test_system_exit_propagates(self):
        async def exit_now() -> None:
            raise SystemExit(3)

        with pytest.raises(SystemExit) as exc_info:
            block_on_local(exit_now)

        assert exc_info.value.code == 3

    @pytest.mark.asyncio
    async def test_refuses_running_loop(self):
        with pytest.raises(BridgeError, match="running event loop"):
            block_on_local(add, 1, 2)
