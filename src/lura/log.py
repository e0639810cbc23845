"""Logging setup for applications using lura.

Records are rendered as:

    10/18 14:03:22.517            lura.run.executors DEBUG Started subprocess ...

i.e. a local timestamp, the logger name right-aligned (keeping only its last
`target_width` characters), the level and the message.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import datetime
from typing import IO

from .config import Config, get_config

__all__ = ["LineFormatter", "setup"]

ROOT_LOGGER = "lura"

# Handler installed by the last setup() call
_handler: logging.Handler | None = None


class LineFormatter(logging.Formatter):
    """Single-line formatter with fixed-width columns."""

    def __init__(self, target_width: int = 25) -> None:
        super().__init__()
        self.target_width = target_width

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created)
        return f"{stamp:%m/%d %H:%M:%S}.{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        target = record.name[-self.target_width:]
        line = (
            f"{self.formatTime(record):<18} "
            f"{target:>{self.target_width}} "
            f"{record.levelname:<5} "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _PredicateFilter(logging.Filter):
    def __init__(self, predicate: Callable[[logging.LogRecord], bool]) -> None:
        super().__init__()
        self.predicate = predicate

    def filter(self, record: logging.LogRecord) -> bool:
        return bool(self.predicate(record))


def setup(
    level: int | str | None = None,
    stream: IO[str] | None = None,
    filter: Callable[[logging.LogRecord], bool] | None = None,
    config: Config | None = None,
) -> logging.Handler:
    """Install a handler on the `lura` logger.

    Calling setup() again replaces the handler installed by the previous call.

    Args:
        level: Log level; defaults to the configured level
        stream: Output stream; defaults to the debug log file in debug
            mode, stderr otherwise
        filter: Optional predicate deciding which records are emitted
        config: Configuration; defaults to get_config()

    Returns:
        The installed handler
    """
    config = config or get_config()

    handler: logging.Handler
    if stream is None and config.log_debug and config.log_file:
        handler = logging.FileHandler(config.log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream or sys.stderr)

    handler.setFormatter(LineFormatter(config.target_width))
    if filter is not None:
        handler.addFilter(_PredicateFilter(filter))

    global _handler
    logger = logging.getLogger(ROOT_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()
    logger.addHandler(handler)
    _handler = handler
    logger.setLevel(level if level is not None else config.log_level)
    return handler
