"""Timed, burst-coalescing reads from a live text source.

The reader never polls: between two logical reads it sleeps for whatever is
left of the inter-read window, then drains everything the source already has
ready into a single chunk.
"""

from __future__ import annotations

import codecs
import functools
import logging
import select
import sys
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import BinaryIO

_LOGGER = logging.getLogger(__name__)

DEFAULT_MILLIS_OFFSET = 2000
DEFAULT_BUFFER_SIZE = 2000

StreamFactory = Callable[[], BinaryIO]


def stdin_factory() -> BinaryIO:
    # Unbuffered so a read returns as soon as any bytes are available.
    return open(sys.stdin.fileno(), "rb", buffering=0, closefd=False)


def path_factory(path: Path) -> StreamFactory:
    return functools.partial(open, path, "rb", buffering=0)


class TextSource:
    """Binary stream + incremental decoder with a readiness check."""

    def __init__(
        self,
        stream: BinaryIO,
        encoding: str = "utf-8",
        factory: StreamFactory | None = None,
    ) -> None:
        self.encoding = encoding
        self._stream = stream
        self._factory = factory
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._exhausted = False

    @classmethod
    def from_factory(cls, factory: StreamFactory, encoding: str = "utf-8") -> TextSource:
        return cls(factory(), encoding, factory=factory)

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def ready(self) -> bool:
        if self._exhausted or self._stream.closed:
            # The next read reports end of stream without blocking.
            return True

        try:
            fileno = self._stream.fileno()
        except (AttributeError, OSError):
            # In-memory streams never block.
            return True

        try:
            readable, _, _ = select.select([fileno], [], [], 0)
        except (OSError, ValueError):
            return True

        return bool(readable)

    def read(self, size: int) -> str | None:
        """Read up to ``size`` bytes; None once the stream is exhausted or closed."""
        if self._exhausted or self._stream.closed:
            return None

        read = getattr(self._stream, "read1", self._stream.read)
        try:
            data = read(size)
        except ValueError:
            if self._stream.closed:
                return None
            raise

        if data is None:
            # Non-blocking stream with nothing pending.
            return ""

        if not data:
            self._exhausted = True
            tail = self._decoder.decode(b"", final=True)
            return tail or None

        return self._decoder.decode(data)

    def reset(self) -> None:
        if not self._stream.closed and self._stream.seekable():
            self._stream.seek(0)
        elif self._factory is not None:
            self._stream = self._factory()
        else:
            raise OSError("Source cannot be reset: not seekable and no factory")

        self._decoder = codecs.getincrementaldecoder(self.encoding)()
        self._exhausted = False

    def close(self) -> None:
        if not self._stream.closed:
            self._stream.close()


class ReaderState(Enum):
    NOT_YET_READ = "not_yet_read"
    READING = "reading"
    IDLE = "idle"
    EXHAUSTED = "exhausted"


class TimedChunkReader:
    """
    Returns one chunk per call: everything the source had ready once the
    inter-read window elapsed.

    ``read()`` returns ``""`` while the source is idle and ``None`` once it is
    exhausted (or was closed from outside).
    """

    def __init__(
        self,
        source: TextSource,
        millis_offset: int = DEFAULT_MILLIS_OFFSET,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        self._source = source
        self._millis_offset = 0
        self.millis_offset = millis_offset
        self.buffer_size = buffer_size
        self._clock = clock
        self._sleep = sleep

        self._last_read = clock()
        self._last_idle = self._last_read
        self._state = ReaderState.NOT_YET_READ
        self._block_once = False

    @property
    def millis_offset(self) -> int:
        return self._millis_offset

    @millis_offset.setter
    def millis_offset(self, offset: int) -> None:
        if offset < 0:
            raise ValueError(f"millis_offset must be >= 0, got {offset}")
        self._millis_offset = offset

    @property
    def state(self) -> ReaderState:
        return self._state

    def request_blocking_read(self) -> None:
        """Make the next read attempt at least one read even if nothing is ready."""
        self._block_once = True

    def read(self) -> str | None:
        if self._state is ReaderState.EXHAUSTED:
            return None

        if self._state is not ReaderState.NOT_YET_READ:
            self._wait_for_window()

        parts: list[str] = []
        exhausted = False

        while self._may_read():
            data = self._source.read(self.buffer_size)
            if data is None:
                exhausted = True
                break
            if not data:
                break

            self._last_read = self._clock()
            self._state = ReaderState.READING
            parts.append(data)

        if exhausted:
            _LOGGER.debug("Source exhausted")
            self._state = ReaderState.EXHAUSTED
            if not parts:
                return None
        elif not parts and self._state is not ReaderState.NOT_YET_READ:
            self._state = ReaderState.IDLE
            self._last_idle = self._clock()

        chunk = "".join(parts)
        if chunk:
            _LOGGER.debug("Read %s char(s) in %s part(s)", len(chunk), len(parts))
        return chunk

    def _may_read(self) -> bool:
        if self._block_once:
            self._block_once = False
            return True

        if self._state is ReaderState.NOT_YET_READ:
            return True

        return self._source.ready()

    def _wait_for_window(self) -> None:
        window = self._millis_offset / 1000
        since = self._last_read
        if self._state is ReaderState.IDLE:
            # An idle source gets a full window between attempts too.
            since = max(since, self._last_idle)
        elapsed = self._clock() - since
        if elapsed < window:
            self._sleep(window - elapsed)

    def reset(self) -> None:
        self._source.reset()
        self._state = ReaderState.NOT_YET_READ
        self._block_once = False
        self._last_read = self._clock()
        self._last_idle = self._last_read

    def close(self) -> None:
        self._source.close()

    def __enter__(self) -> TimedChunkReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
