#!/usr/bin/env python3
import argparse
import codecs
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from . import PROGRAM_NAME, __version__
from .config import Settings
from .paragraphs import ParagraphSegmenter
from .reader import TextSource, TimedChunkReader, path_factory, stdin_factory
from .segmenter import SentenceDetector
from .sink import SentenceWriter
from .streaming import StreamingSentenceFlushController

_LOGGER = logging.getLogger(__name__)


def _millis(value: str) -> int:
    try:
        millis = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected milliseconds, got '{value}'") from None
    if millis < 0:
        raise argparse.ArgumentTypeError(f"milliseconds must be >= 0, got {millis}")
    return millis


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def _encoding(value: str) -> str:
    try:
        codecs.lookup(value)
    except LookupError:
        raise argparse.ArgumentTypeError(f"unknown encoding '{value}'") from None
    return value


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="Sentence detector for streaming content. "
        "Reads text from a file or stdin and prints one sentence per line. "
        "A blank line is treated as a paragraph boundary.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Text file to read (default: stdin)",
    )
    parser.add_argument(
        "--strip-newline",
        action="store_true",
        default=defaults.strip_newline,
        help="Replace line breaks inside a sentence with spaces",
    )
    parser.add_argument(
        "--max-idle",
        type=_millis,
        default=defaults.max_idle_millis,
        metavar="MILLIS",
        help="Flush the pending sentence after this much silence",
    )
    parser.add_argument(
        "--read-offset",
        type=_millis,
        default=defaults.read_offset,
        metavar="MILLIS",
        help="Minimum delay between reads (0 keeps the reader default)",
    )
    parser.add_argument("--buffer-size", type=_positive_int, default=defaults.buffer_size)
    parser.add_argument("--encoding", type=_encoding, default=defaults.encoding)
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    try:
        settings = Settings()
    except ValidationError as err:
        build_parser(Settings.model_construct()).error(f"invalid environment configuration: {err}")
    return build_parser(settings).parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )

    factory = path_factory(args.input) if args.input is not None else stdin_factory
    try:
        source = TextSource.from_factory(factory, args.encoding)
    except OSError as err:
        _LOGGER.error("Cannot open input: %s", err)
        return 1

    reader = TimedChunkReader(source, buffer_size=args.buffer_size)
    if args.read_offset > 0:
        reader.millis_offset = args.read_offset

    controller = StreamingSentenceFlushController(
        ParagraphSegmenter(reader),
        SentenceDetector(),
        SentenceWriter(sys.stdout),
        max_idle_millis=args.max_idle,
        strip_newline=args.strip_newline,
    )

    _LOGGER.info("Starting %s on %s", PROGRAM_NAME, args.input or "stdin")
    _LOGGER.debug(
        "Read window: %s ms | Max idle: %s ms | Strip newline: %s",
        reader.millis_offset,
        args.max_idle,
        args.strip_newline,
    )

    with reader:
        try:
            count = controller.run()
        except KeyboardInterrupt:
            _LOGGER.info("Interrupted after %s sentence(s)", controller.sentence_count)
            return 130
        except (OSError, UnicodeDecodeError) as err:
            _LOGGER.error("I/O error after %s sentence(s): %s", controller.sentence_count, err)
            return 1

    _LOGGER.info("Done: %s sentence(s)", count)
    return 0


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
