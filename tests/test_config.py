"""Config module tests.

Test LURA_* environment variable parsing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest import mock

import pytest

from lura.config import DEFAULT_TARGET_WIDTH, Config, get_config, load_config, reload_config


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith("LURA_")}


class TestLogLevel:
    """Test LURA_LOG_LEVEL parsing."""

    def test_unset_means_info(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            assert load_config().log_level == logging.INFO

    @pytest.mark.parametrize(
        ("value", "level"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("Warning", logging.WARNING),
            ("warn", logging.WARNING),
            (" error ", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_level_names(self, value: str, level: int):
        with mock.patch.dict(os.environ, {"LURA_LOG_LEVEL": value}, clear=False):
            assert load_config().log_level == level

    def test_unknown_level_falls_back(self):
        with mock.patch.dict(os.environ, {"LURA_LOG_LEVEL": "verbose"}, clear=False):
            assert load_config().log_level == logging.INFO


class TestLogDebug:
    """Test LURA_LOG_DEBUG parsing."""

    @pytest.mark.parametrize("value", ["true", "True", "1", "yes", "on"])
    def test_truthy_values(self, value: str):
        with mock.patch.dict(os.environ, {"LURA_LOG_DEBUG": value}, clear=False):
            config = load_config()

        assert config.log_debug is True
        assert config.log_level == logging.DEBUG
        assert config.log_file is not None
        assert Path(config.log_file).parent.name == "lura"

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", ""])
    def test_falsy_values(self, value: str):
        with mock.patch.dict(os.environ, {"LURA_LOG_DEBUG": value}, clear=False):
            config = load_config()

        assert config.log_debug is False
        assert config.log_file is None


class TestTargetWidth:
    """Test LURA_LOG_TARGET_WIDTH parsing."""

    def test_default(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            assert load_config().target_width == DEFAULT_TARGET_WIDTH

    @pytest.mark.parametrize(("value", "width"), [("30", 30), ("2", 8), ("500", 80), ("wide", 25)])
    def test_values(self, value: str, width: int):
        with mock.patch.dict(os.environ, {"LURA_LOG_TARGET_WIDTH": value}, clear=False):
            assert load_config().target_width == width


class TestGlobalConfig:
    """Test the cached global instance."""

    def test_get_config_cached(self):
        reload_config()

        assert get_config() is get_config()

    def test_reload_config(self):
        with mock.patch.dict(os.environ, {"LURA_LOG_LEVEL": "error"}, clear=False):
            config = reload_config()
            assert config.log_level == logging.ERROR
            assert get_config() is config
        reload_config()

    def test_repr(self):
        text = repr(Config(log_level=logging.WARNING))

        assert "log_level=WARNING" in text
        assert "target_width=25" in text
