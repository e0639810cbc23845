"""Convenience function tests: runner(), run(), sh() and their async forms."""

from __future__ import annotations

import logging
import shutil
from unittest import mock

import pytest

import lura
from lura import run as run_module
from lura.errors import ShellMissingError, UnexpectedExitCodeError
from lura.run import TaskExecutor, find_shell, run, run_async, runner, sh, sh_async

HAS_SHELL = any(shutil.which(shell) for shell in run_module.SHELLS)

requires_shell = pytest.mark.skipif(not HAS_SHELL, reason="neither bash nor sh in PATH")


class TestDefaultRunner:
    """Test the preset Runner."""

    def test_enforces_zero(self):
        assert runner().expected_code == 0

    def test_does_not_capture(self):
        assert runner().capturing is False

    def test_executor_argument(self):
        executor = TaskExecutor()

        assert runner(executor).strategy is executor

    def test_lines_are_logged(self, python, caplog):
        caplog.set_level(logging.INFO, logger="lura.run")

        runner().execute(*python('import sys; print("to out"); sys.stderr.write("to err\\n")'))

        records = {(r.name, r.getMessage()) for r in caplog.records}
        assert ("lura.run.out", "to out") in records
        assert ("lura.run.err", "to err") in records


class TestRun:
    """Test run() and run_async()."""

    def test_captures(self, python):
        output = run(*python('print("hello test")'))

        assert output.exit_code == 0
        assert output.stdout == "hello test\n"
        assert output.stderr == ""

    def test_enforces_zero(self, python):
        with pytest.raises(UnexpectedExitCodeError) as exc_info:
            run(*python("import sys; sys.exit(4)"))

        assert exc_info.value.code == 4

    @pytest.mark.asyncio
    async def test_run_async(self, python):
        output = await run_async(*python('print("async")'))

        assert output.stdout == "async\n"

    def test_package_exports(self):
        assert lura.run is run_module
        assert lura.Runner is run_module.Runner
        assert lura.sh is sh


class TestShell:
    """Test sh() and shell lookup."""

    @requires_shell
    def test_echo(self):
        output = sh("echo hi")

        assert output.exit_code == 0
        assert output.stdout == "hi\n"

    @requires_shell
    def test_pipeline_and_stderr(self):
        output = sh("echo one; echo two >&2")

        assert output.stdout == "one\n"
        assert output.stderr == "two\n"

    @requires_shell
    def test_failure_enforced(self):
        with pytest.raises(UnexpectedExitCodeError) as exc_info:
            sh("exit 3")

        assert exc_info.value.code == 3

    @requires_shell
    @pytest.mark.asyncio
    async def test_sh_async(self):
        output = await sh_async("echo hi")

        assert output.stdout == "hi\n"

    def test_prefers_bash(self):
        found = {"bash": "/bin/bash", "sh": "/bin/sh"}
        with mock.patch.object(run_module.shutil, "which", side_effect=found.get):
            assert find_shell() == "bash"

    def test_falls_back_to_sh(self):
        found = {"sh": "/bin/sh"}
        with mock.patch.object(run_module.shutil, "which", side_effect=found.get):
            assert find_shell() == "sh"

    def test_no_shell(self):
        with mock.patch.object(run_module.shutil, "which", return_value=None):
            with pytest.raises(ShellMissingError) as exc_info:
                sh("echo hi")

        assert exc_info.value.shells == ("bash", "sh")
