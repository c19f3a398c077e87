import logging
import re
from collections import deque
from collections.abc import Iterator

from .reader import TimedChunkReader

_LOGGER = logging.getLogger(__name__)

# Newline, optional horizontal whitespace, newline. The delimiter stays with
# the paragraph it closes so concatenating paragraphs gives back the input.
PARAGRAPH_BOUNDARY_RE = re.compile(r"\n[^\S\n]*\n")


class ParagraphSegmenter:
    """Groups timed chunks into blank-line delimited paragraphs."""

    def __init__(self, reader: TimedChunkReader) -> None:
        self._reader = reader
        self._paragraphs: deque[str] = deque()
        self._pending = ""
        self._exhausted = False

    def read_immediately(self, force_attempt: bool = False) -> str | None:
        """
        Next paragraph, "" if none closed yet, or None at end of stream.

        With ``force_attempt`` and nothing pending, the reader blocks for data
        once instead of reporting an idle source.
        """
        if self._paragraphs:
            return self._paragraphs.popleft()

        if self._exhausted:
            return self._take_pending()

        # A pending tail must be able to see the source go idle.
        if force_attempt and not self._pending:
            self._reader.request_blocking_read()

        chunk = self._reader.read()
        if chunk is None:
            self._exhausted = True
            return self._take_pending()

        if chunk:
            self._split(chunk)
            if self._paragraphs:
                return self._paragraphs.popleft()
            return ""

        # Idle source: whatever is pending will not grow any time soon.
        if self._pending:
            _LOGGER.debug("Source idle, handing over %s pending char(s)", len(self._pending))
        return self._take_pending() or ""

    def read(self) -> str | None:
        """Block until a paragraph (or the tail of the stream) is available."""
        while True:
            paragraph = self.read_immediately(force_attempt=not self._pending)
            if paragraph != "":
                return paragraph

    def _split(self, chunk: str) -> None:
        text = self._pending + chunk
        start = 0
        for match in PARAGRAPH_BOUNDARY_RE.finditer(text):
            self._paragraphs.append(text[start : match.end()])
            start = match.end()
        self._pending = text[start:]

    def _take_pending(self) -> str | None:
        pending = self._pending
        self._pending = ""
        return pending or None

    def close(self) -> None:
        self._reader.close()

    def __iter__(self) -> Iterator[str]:
        while (paragraph := self.read()) is not None:
            yield paragraph
