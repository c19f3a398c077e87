import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .segmenter import SentenceClassifier
from .sink import strip_newlines

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_IDLE_MILLIS = 6000


class ParagraphSource(Protocol):
    def read_immediately(self, force_attempt: bool = False) -> str | None: ...


@dataclass
class FlushState:
    idle_since: float
    remainder: str | None = None
    sentence_count: int = 0


def trailing_whitespace(text: str) -> str:
    return text[len(text.rstrip()) :]


class StreamingSentenceFlushController:
    """
    Accumulate/flush loop over a live paragraph stream.

    Each cycle classifies ``remainder + paragraph``. Unless the cycle is
    forced, the last sentence is held back as the new remainder because more
    text may still extend it. A cycle is forced at end of stream, or when the
    source produced nothing for longer than ``max_idle_millis``.
    """

    def __init__(
        self,
        paragraphs: ParagraphSource,
        classifier: SentenceClassifier,
        sink: Callable[[str], None],
        max_idle_millis: int = DEFAULT_MAX_IDLE_MILLIS,
        strip_newline: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_idle_millis < 0:
            raise ValueError(f"max_idle_millis must be >= 0, got {max_idle_millis}")

        self._paragraphs = paragraphs
        self._classifier = classifier
        self._sink = sink
        self._max_idle_millis = max_idle_millis
        self._strip_newline = strip_newline
        self._clock = clock
        self._state = FlushState(idle_since=clock())

    @property
    def remainder(self) -> str | None:
        return self._state.remainder

    @property
    def sentence_count(self) -> int:
        return self._state.sentence_count

    def run(self) -> int:
        """Process the stream until it ends; returns the number of sentences emitted."""
        paragraph: str | None = ""
        while True:
            if paragraph is not None:
                paragraph = self._paragraphs.read_immediately(self._state.remainder is None)

            if paragraph is None and self._state.remainder is None:
                break

            self.process_cycle(paragraph)

        _LOGGER.debug("End of stream after %s sentence(s)", self._state.sentence_count)
        return self._state.sentence_count

    def process_cycle(self, paragraph: str | None) -> list[str]:
        """
        Run one accumulation cycle. ``paragraph`` is None at end of stream and
        "" when no new paragraph closed. Returns the lines written to the sink.
        """
        state = self._state
        text = (state.remainder or "") + (paragraph or "")
        if not text:
            return []

        whitespace = trailing_whitespace(text)
        sentences = self._classifier.detect(text)

        if not sentences:
            if paragraph is None:
                # Nothing left to detect and nothing more will arrive.
                state.remainder = None
            return []

        now = self._clock()
        force = paragraph is None
        if paragraph == "":
            idle_millis = (now - state.idle_since) * 1000
            if idle_millis > self._max_idle_millis:
                _LOGGER.debug("Idle for %.0f ms, flushing", idle_millis)
                force = True
        else:
            state.idle_since = now

        if force:
            emitted = sentences
            state.remainder = None
        else:
            emitted = sentences[:-1]
            state.remainder = sentences[-1] + whitespace

        lines = [strip_newlines(s) if self._strip_newline else s for s in emitted]
        for line in lines:
            self._sink(line)

        state.sentence_count += len(lines)
        return lines
