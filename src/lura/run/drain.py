"""Line draining for child output pipes.

A pipe must be read continuously until EOF, otherwise a child that fills the
kernel buffer of one pipe blocks while the parent waits on the other. The
line splitting, decoding, observer dispatch and capture live in LineDrain;
drain_pipe() and drain_stream() only pump bytes into it, one for blocking
file objects and one for asyncio streams.

Failure handling:
- An undecodable line or a raising observer marks the drain as failed. The
  pipe keeps being read to EOF (and discarded) so the child is not stalled.
- A read error stops reading; on_abort is called so the caller can close
  the pipe and let the child see EPIPE.
- finish() raises DrainError chained to the first failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import IO

from ..errors import DrainError
from .spec import LineObserver

__all__ = [
    "CHUNK_SIZE",
    "LineDrain",
    "drain_pipe",
    "drain_stream",
]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LineDrain:
    """Incremental line splitter that feeds observers and the capture buffer.

    Example:
        drain = LineDrain("stdout", [print], capture=True)
        drain.feed(b"hello ")
        drain.feed(b"test\\n")
        drain.finish()  # -> "hello test\\n"
    """

    def __init__(
        self,
        stream: str,
        observers: Iterable[LineObserver] = (),
        capture: bool = False,
        encoding: str = "utf-8",
    ) -> None:
        self.stream = stream
        self._observers = tuple(observers)
        self._capture = capture
        self._encoding = encoding
        self._pending = bytearray()
        # Bytes of _pending already known to hold no newline
        self._scanned = 0
        self._lines: list[str] = []
        self._error: BaseException | None = None
        self._reason = ""
        self.line_count = 0

    @property
    def failed(self) -> bool:
        return self._error is not None

    def feed(self, chunk: bytes) -> None:
        """Consume a chunk of bytes, emitting every complete line in it."""
        if self._error is not None:
            return

        self._pending += chunk
        start = 0
        search = self._scanned
        while True:
            end = self._pending.find(b"\n", search)
            if end < 0:
                break
            self._emit(bytes(self._pending[start:end]))
            start = search = end + 1
            if self._error is not None:
                self._pending.clear()
                self._scanned = 0
                return
        del self._pending[:start]
        self._scanned = len(self._pending)

    def fail(self, error: BaseException, reason: str) -> None:
        """Record a failure; only the first one is kept."""
        if self._error is None:
            self._error = error
            self._reason = reason
            self._pending.clear()
            self._scanned = 0
            logger.debug(f"Drain of {self.stream} failed: {reason}")

    def finish(self) -> str | None:
        """Flush the trailing partial line and return the captured text.

        Returns:
            Captured text (each line followed by a newline) when capturing,
            otherwise None

        Raises:
            DrainError: If any line failed to decode or dispatch, or the pipe
                could not be read
        """
        if self._error is None and self._pending:
            tail = bytes(self._pending)
            self._pending.clear()
            self._scanned = 0
            self._emit(tail)

        if self._error is not None:
            raise DrainError(self.stream, self._reason) from self._error

        if not self._capture:
            return None
        return "".join(f"{line}\n" for line in self._lines)

    def _emit(self, raw: bytes) -> None:
        if raw.endswith(b"\r"):
            raw = raw[:-1]

        try:
            line = raw.decode(self._encoding)
        except UnicodeDecodeError as e:
            self.fail(e, f"line {self.line_count + 1} is not valid {self._encoding}")
            return

        self.line_count += 1
        for observer in self._observers:
            try:
                observer(line)
            except Exception as e:
                self.fail(e, f"observer {observer!r} raised {type(e).__name__}: {e}")
                return

        if self._capture:
            self._lines.append(line)


def drain_pipe(
    pipe: IO[bytes],
    drain: LineDrain,
    on_abort: Callable[[], None] | None = None,
) -> str | None:
    """Read a blocking binary pipe until EOF.

    The pipe is closed on return.

    Args:
        pipe: Readable end of a subprocess pipe
        drain: Line drain receiving the bytes
        on_abort: Called if reading stops before EOF

    Returns:
        Result of drain.finish()
    """
    try:
        read = getattr(pipe, "read1", pipe.read)
        while True:
            try:
                chunk = read(CHUNK_SIZE)
            except (OSError, ValueError) as e:
                drain.fail(e, f"read failed: {e}")
                if on_abort is not None:
                    on_abort()
                break
            if not chunk:
                break
            drain.feed(chunk)
    finally:
        pipe.close()

    return drain.finish()


async def drain_stream(
    stream: asyncio.StreamReader,
    drain: LineDrain,
    on_abort: Callable[[], None] | None = None,
) -> str | None:
    """Read an asyncio stream until EOF.

    Args:
        stream: Subprocess stdout or stderr reader
        drain: Line drain receiving the bytes
        on_abort: Called if reading stops before EOF

    Returns:
        Result of drain.finish()
    """
    while True:
        try:
            chunk = await stream.read(CHUNK_SIZE)
        except OSError as e:
            drain.fail(e, f"read failed: {e}")
            if on_abort is not None:
                on_abort()
            break
        if not chunk:
            break
        drain.feed(chunk)

    return drain.finish()
