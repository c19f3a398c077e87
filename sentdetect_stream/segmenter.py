from typing import Protocol

from sentence_stream import SentenceBoundaryDetector

# sentence_stream drops these from its output; the text we return keeps them.
_REMOVED_CHARS = "*"


class SentenceClassifier(Protocol):
    def detect(self, text: str) -> list[str]: ...


class SentenceDetector:
    """
    Splits a text blob into sentences with sentence_stream.

    Only the last sentence returned can be incomplete: it is whatever the
    boundary detector still held when the blob ran out. Sentences are slices
    of the input (trimmed of surrounding whitespace), so no character inside
    a sentence is lost.
    """

    def detect(self, text: str) -> list[str]:
        if not text or text.isspace():
            return []

        sbd = SentenceBoundaryDetector()
        sentences = [sentence for sentence in sbd.add_chunk(text) if sentence]
        remaining = sbd.finish()
        if remaining:
            sentences.append(remaining)
        if not sentences:
            # Only removed characters left, e.g. a lone "*".
            return [text.strip()]
        return _align(text, sentences)


def _align(text: str, sentences: list[str]) -> list[str]:
    """Map detected sentences back onto the slices of ``text`` they came from."""
    spans: list[str] = []
    pos = 0
    for index, sentence in enumerate(sentences):
        start = pos
        while start < len(text) and text[start].isspace():
            start += 1

        end = None if index == len(sentences) - 1 else _match(text, start, sentence)
        if end is None:
            # Last sentence, or one we cannot line up: it takes the rest.
            spans.append(text[start:].rstrip())
            break

        while end < len(text) and text[end] in _REMOVED_CHARS:
            end += 1
        spans.append(text[start:end])
        pos = end

    return [span for span in spans if span]


def _match(text: str, start: int, sentence: str) -> int | None:
    end = start
    for char in sentence:
        while (
            end < len(text)
            and text[end] != char
            and (text[end] in _REMOVED_CHARS or text[end].isspace())
        ):
            end += 1
        if end >= len(text) or text[end] != char:
            return None
        end += 1
    return end
