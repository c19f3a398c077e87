import sys
from typing import TextIO


def strip_newlines(sentence: str) -> str:
    """Replace every carriage return and line feed with a single space."""
    return sentence.replace("\r", " ").replace("\n", " ")


class SentenceWriter:
    """One newline-terminated line per sentence, flushed immediately."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self.lines_written = 0

    def __call__(self, sentence: str) -> None:
        self._stream.write(sentence + "\n")
        self._stream.flush()
        self.lines_written += 1
