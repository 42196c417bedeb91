"""Public entry points of the slide engine.

WHY: Callers should not need to know that a slide goes through a
tokenizer, a timing algorithm and a statistics pass, or which module
owns which step. This module is the one import a session layer needs.

HOW: process_text() runs tokenize_text() -> apply_timing() ->
calculate_stats() on a whole text. create_chunked_processor() returns a
ChunkedProcessor for text too large to process up front.
process_content(), recalculate_pixel_offsets() and rescale_by_wpm() are
re-exported from the modules that implement them.

RULES:
- process_text() output equals a fully drained ChunkedProcessor on the
  same (text, settings), except for words that straddle chunk boundaries
- Nothing here reads configuration; defaults come from the caller
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from rsvp_engine.core.chunked import (
    DEFAULT_CHUNK_CHARS,
    DEFAULT_SLIDE_BUFFER,
    ChunkedProcessor,
)
from rsvp_engine.core.content import process_content
from rsvp_engine.core.models import PlainSlide, ReaderSettings, SlideShowData
from rsvp_engine.core.orp import TextMeasurer, recalculate_pixel_offsets
from rsvp_engine.core.timing import (
    InformationLookup,
    apply_timing,
    calculate_stats,
    rescale_by_wpm,
)
from rsvp_engine.core.tokenizer import tokenize_text

__all__ = [
    "create_chunked_processor",
    "process_content",
    "process_text",
    "recalculate_pixel_offsets",
    "rescale_by_wpm",
]


def process_text(
    text: str,
    settings: ReaderSettings,
    measurer: Optional[TextMeasurer] = None,
    information: Optional[InformationLookup] = None,
) -> Tuple[List[PlainSlide], SlideShowData]:
    """Tokenize, time and summarize a whole text.

    Args:
        text: Raw input text.
        settings: Reader settings.
        measurer: Optional text measurement for exact pixel offsets.
        information: Optional word information lookup for word_frequency.

    Returns:
        (slides, stats). Empty text gives ([], all-zero stats).
    """
    slides = tokenize_text(text, settings, measurer)
    apply_timing(slides, settings, information)
    return slides, calculate_stats(slides, settings)


def create_chunked_processor(
    text: str,
    settings: ReaderSettings,
    chunk_chars: int = DEFAULT_CHUNK_CHARS,
    slide_buffer: int = DEFAULT_SLIDE_BUFFER,
    measurer: Optional[TextMeasurer] = None,
    information: Optional[InformationLookup] = None,
) -> ChunkedProcessor:
    """Create a lazily evaluated processor for a large text."""
    return ChunkedProcessor(
        text,
        settings,
        chunk_chars=chunk_chars,
        slide_buffer=slide_buffer,
        measurer=measurer,
        information=information,
    )
