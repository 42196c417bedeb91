"""Command-line interface for the RSVP slide engine.

WHY: Tuning pacing settings is much easier when the slides for a text
can be inspected from the terminal, diffed, or piped into another tool.
The CLI exposes the same pipeline the HTTP API uses behind one command.

HOW: argparse reads an input file (or stdin) and reader options, builds
ReaderSettings from the configured defaults plus the flags, and runs
either process_text(), process_content() (--blocks) or a chunked
processor drained with process_more() (--chunked). Slides are written
to stdout as text lines or JSON; status goes to stderr.

RULES:
- Positional argument: input file path, or "-" for stdin
- --blocks reads a JSON list of content blocks instead of plain text
- --measure uses Pillow font metrics for pixel offsets
- Status output goes to stderr (not stdout); --verbose enables debug logs
- Invalid settings or input print "Error: ..." and exit with code 1
- Python 3.9 compatible: no match/case, no X | Y unions
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from rsvp_engine.config import (
    CHUNK_CHARS,
    MAX_CHUNK_SIZE,
    MIN_CHUNK_SIZE,
    default_settings,
    parse_algorithm,
    validate_settings,
)
from rsvp_engine.core.content import parse_blocks
from rsvp_engine.core.models import ReaderSettings, Slide, SlideShowData, TimingAlgorithm
from rsvp_engine.core.orp import PillowMeasurer, TextMeasurer
from rsvp_engine.core.pipeline import create_chunked_processor, process_content, process_text
from rsvp_engine.core.timing import calculate_stats


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    input_path = Path(path)
    if not input_path.is_file():
        raise ValueError("File not found: {}".format(input_path))
    return input_path.read_text(encoding="utf-8")


def _build_settings(args: argparse.Namespace) -> ReaderSettings:
    """Apply CLI flags on top of the configured defaults.

    Raises:
        ValueError: If the algorithm is unknown or a value is out of range.
    """
    settings = default_settings()
    overrides = {}
    if args.wpm is not None:
        overrides["wpm"] = args.wpm
    if args.words_per_slide is not None:
        overrides["chunk_size"] = args.words_per_slide
    if args.algorithm is not None:
        overrides["algorithm"] = parse_algorithm(args.algorithm)
    if args.font is not None:
        overrides["font"] = args.font
    if args.font_size is not None:
        overrides["font_size"] = args.font_size
    settings = replace(settings, **overrides)
    validate_settings(settings)
    return settings


def _run_chunked(
    text: str,
    settings: ReaderSettings,
    measurer: Optional[TextMeasurer],
) -> List[Slide]:
    processor = create_chunked_processor(
        text, settings, chunk_chars=CHUNK_CHARS, measurer=measurer
    )
    _status("Processing {} chunk(s)...".format(processor.chunk_count))
    while processor.process_more():
        _status("  {} / {} chunks".format(
            processor.processed_chunk_count, processor.chunk_count
        ))
    return processor.get_slides(0, processor.total_estimated_slides)


def format_text(slides: Sequence[Slide]) -> str:
    """One line per slide: index, slide number, duration, post delay, text."""
    lines = []
    for index, slide in enumerate(slides):
        text = slide.text.replace("\n", "\\n")
        lines.append("{:>6}  {:>6}  {:>8.1f}  {:>6.0f}  {}".format(
            index, slide.slide_number, slide.duration, slide.post_delay, text
        ))
    return "\n".join(lines)


def format_stats(stats: SlideShowData) -> str:
    return (
        "{} slides, {:.1f}s reading ({:.1f}s with pauses), "
        "slide duration {:.0f}-{:.0f} ms, {} wpm".format(
            stats.total_slides,
            stats.total_duration / 1000,
            stats.total_duration_with_pauses / 1000,
            stats.min_duration,
            stats.max_duration,
            stats.real_wpm,
        )
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: input (file path or "-")
    - Reader options default to the configured RSVP_* values
    """
    parser = argparse.ArgumentParser(
        prog="rsvp_engine",
        description="Convert text into timed RSVP slides with fixation points.",
    )

    parser.add_argument(
        "input",
        help="Path to a UTF-8 text file, or '-' to read stdin.",
    )

    parser.add_argument(
        "--blocks",
        action="store_true",
        help="Treat the input as a JSON list of content blocks.",
    )

    parser.add_argument(
        "--wpm",
        type=float,
        default=None,
        help="Target words per minute (default: RSVP_DEFAULT_WPM).",
    )

    parser.add_argument(
        "--words-per-slide",
        type=int,
        default=None,
        help="Words per slide, {}-{} (default: RSVP_DEFAULT_CHUNK_SIZE).".format(
            MIN_CHUNK_SIZE, MAX_CHUNK_SIZE
        ),
    )

    parser.add_argument(
        "--algorithm",
        default=None,
        help="Timing algorithm. Available: {}.".format(
            ", ".join(a.value for a in TimingAlgorithm)
        ),
    )

    parser.add_argument(
        "--font",
        default=None,
        help="Font name or .ttf path used for pixel offsets.",
    )

    parser.add_argument(
        "--font-size",
        type=float,
        default=None,
        help="Font size in pixels.",
    )

    parser.add_argument(
        "--measure",
        action="store_true",
        help="Measure pixel offsets with Pillow font metrics instead of estimating.",
    )

    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: %(default)s).",
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print summary statistics to stderr.",
    )

    parser.add_argument(
        "--chunked",
        action="store_true",
        help="Process the text chunk by chunk, as used for large documents.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _build_settings(args)
        raw = _read_input(args.input)
        measurer = PillowMeasurer() if args.measure else None

        block_start_indices: Optional[List[int]] = None
        if args.blocks:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError("Input is not valid JSON: {}".format(exc)) from None
            slides, stats, block_start_indices = process_content(
                parse_blocks(data), settings, measurer
            )
        elif args.chunked:
            slides = _run_chunked(raw, settings, measurer)
            stats = calculate_stats(slides, settings)
        else:
            slides, stats = process_text(raw, settings, measurer)
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    if args.format == "json":
        payload = {
            "slides": [s.to_dict() for s in slides],
            "stats": stats.to_dict(),
        }
        if block_start_indices is not None:
            payload["block_start_indices"] = block_start_indices
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    elif slides:
        print(format_text(slides))

    if args.stats:
        _status(format_stats(stats))


if __name__ == "__main__":
    main()
