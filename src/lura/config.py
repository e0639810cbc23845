"""Logging configuration from environment variables.

The run engine itself reads no environment variables; these only affect
lura.log.setup().

Environment variables:
    LURA_LOG_LEVEL: Log level name
        - DEBUG/INFO/WARNING/ERROR/CRITICAL, case-insensitive
        - default INFO, unknown names fall back to INFO

    LURA_LOG_DEBUG: Debug log mode
        - true/1/yes/on = log at DEBUG to a timestamped temp file
        - false/0/no/off = log to stderr (default)

    LURA_LOG_TARGET_WIDTH: Width of the logger name column
        - default 25
        - clamped to 8-80
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_TARGET_WIDTH = 25

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_level(value: str | None) -> int:
    if not value:
        return logging.INFO
    return _LEVELS.get(value.strip().upper(), logging.INFO)


def _parse_target_width(value: str | None) -> int:
    if not value:
        return DEFAULT_TARGET_WIDTH
    try:
        width = int(value)
    except ValueError:
        return DEFAULT_TARGET_WIDTH
    return max(8, min(width, 80))


@dataclass
class Config:
    """Logging configuration.

    Attributes:
        log_level: Level for the lura logger
        log_debug: Debug mode (DEBUG level, output to a temp file)
        log_file: Log file path (set automatically when log_debug=True)
        target_width: Width of the logger name column
    """

    log_level: int = logging.INFO
    log_debug: bool = False
    log_file: str | None = None
    target_width: int = DEFAULT_TARGET_WIDTH

    def __repr__(self) -> str:
        return (
            f"Config(log_level={logging.getLevelName(self.log_level)}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file}, "
            f"target_width={self.target_width})"
        )


def _generate_log_file_path() -> str:
    """Return a timestamped log file path under <tmp>/lura/."""
    log_dir = Path(tempfile.gettempdir()) / "lura"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"lura_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("LURA_LOG_DEBUG"), default=False)

    return Config(
        log_level=logging.DEBUG if log_debug else _parse_level(os.environ.get("LURA_LOG_LEVEL")),
        log_debug=log_debug,
        log_file=_generate_log_file_path() if log_debug else None,
        target_width=_parse_target_width(os.environ.get("LURA_LOG_TARGET_WIDTH")),
    )


# Lazily loaded global instance
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
