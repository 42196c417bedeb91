"""Incremental, random-access slide processing for large documents.

WHY: Tokenizing and timing a whole book before showing the first word
makes large documents feel frozen. The reader only needs the first few
hundred slides to start, can fill in the rest in the background, and
occasionally jumps far ahead. This module makes the direct pipeline
usable on arbitrarily large text without processing it up front.

HOW: The text is partitioned once into TextChunks of up to chunk_chars
characters, each cut at whitespace. Each chunk is run through
tokenize_text() + apply_timing() on its own when first needed, its
slide numbers are shifted to continue the global numbering, and the
flat slide list is rebuilt from all processed chunks in order.
  - small input (<= 2 chunks): everything is processed at construction
  - large input: only chunk 0 is processed; the total slide count is
    estimated from chunk 0's slides-per-character density
Reads (get_slides / get_slide) use that density to find the last chunk
that could overlap the requested range plus a read-ahead buffer, and
process every chunk up to it in order. process_more() and process_all()
complete the document; the owner decides when to call them.
estimate_reading_time() and split_into_sections() work on the raw text
and help a caller decide how to load it.

RULES:
- Chunks are processed strictly in document order, so the slide list is
  always a prefix of the full sequence and indices are global
- A chunk moves unprocessed -> processed once and never changes again
- processed_slides_count == sum of slide counts of processed chunks
- total_estimated_slides is exact once complete; before that it is the
  initial estimate, never below processed_slides_count
- A word that straddles a chunk boundary is tokenized as two words;
  this is accepted and not reported
- Words-per-slide groups never span a chunk boundary
- A line break in the whitespace at a cut still ends the paragraph of
  the chunk's last word
- Only the final chunk forces post_delay = 0 on its last slide
- process_more() keeps returning False once nothing remains
"""

from __future__ import annotations

import enum
import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional

from rsvp_engine.core.models import ReaderSettings, Slide, SlideShowData
from rsvp_engine.core.orp import TextMeasurer, recalculate_pixel_offsets
from rsvp_engine.core.timing import (
    InformationLookup,
    apply_timing,
    calculate_stats,
    rescale_by_wpm,
)
from rsvp_engine.core.tokenizer import tokenize_text

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_CHARS = 10000  # ~2000 words
DEFAULT_SLIDE_BUFFER = 500

_WHITESPACE_RUN_RE = re.compile(r"\s*")
SMALL_TEXT_MAX_CHUNKS = 2
_FALLBACK_SLIDES_PER_CHUNK = 100


class ProcessingState(str, enum.Enum):
    """Processor-level progress."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass
class TextChunk:
    """A contiguous slice [start_char, end_char) of the source text."""

    start_char: int
    end_char: int
    text: str
    processed: bool = False
    slides: List[Slide] = field(default_factory=list)
    slide_start_index: int = 0
    line_break_follows: bool = False

    @property
    def length(self) -> int:
        return self.end_char - self.start_char


def partition_text(text: str, chunk_chars: int = DEFAULT_CHUNK_CHARS) -> List[TextChunk]:
    """Split text into chunks of at most chunk_chars characters, cut at whitespace.

    Each chunk's end is pulled back to the nearest whitespace at or
    before the character budget, then moved past that whitespace run as
    far as the budget allows, so the next chunk usually starts on a
    word. When the chunk has no whitespace at all it is cut at exactly
    chunk_chars.

    ``line_break_follows`` records whether the whitespace after the
    chunk's last word holds a line break that lies past the cut.
    """
    chunks: List[TextChunk] = []
    start = 0
    length = len(text)

    while start < length:
        limit = min(start + chunk_chars, length)
        end = limit
        if end < length:
            boundary = end
            while boundary > start and not text[boundary].isspace():
                boundary -= 1
            if boundary > start:
                end = boundary
                while end < limit and text[end].isspace():
                    end += 1

        chunk_text = text[start:end]
        line_break_follows = False
        if end < length:
            content_end = start + len(chunk_text.rstrip())
            run = _WHITESPACE_RUN_RE.match(text, content_end).group(0)
            line_break_follows = "\n" in run or "\r" in run

        chunks.append(TextChunk(
            start_char=start,
            end_char=end,
            text=chunk_text,
            line_break_follows=line_break_follows,
        ))
        start = end

    return chunks


class ChunkedProcessor:
    """Lazily tokenizes and times a large text chunk by chunk.

    One processor belongs to one loaded document. Settings are copied at
    construction; rescale() and recalculate_pixel_offsets() update the
    copy so chunks processed later match the slides already produced.
    """

    def __init__(
        self,
        text: str,
        settings: ReaderSettings,
        chunk_chars: int = DEFAULT_CHUNK_CHARS,
        slide_buffer: int = DEFAULT_SLIDE_BUFFER,
        measurer: Optional[TextMeasurer] = None,
        information: Optional[InformationLookup] = None,
    ) -> None:
        self._text_length = len(text)
        self._settings = replace(settings)
        self._slide_buffer = slide_buffer
        self._measurer = measurer
        self._information = information

        self._chunks = partition_text(text, chunk_chars)
        self._slides: List[Slide] = []
        self._next_chunk = 0
        self._last_slide_number = 0

        if len(self._chunks) <= SMALL_TEXT_MAX_CHUNKS:
            self.process_all()
        elif self._chunks:
            self._process_chunk(0)
            self._next_chunk = 1

        self._estimated_total = self._initial_estimate(text)
        logger.info(
            "Chunked processor ready: %d chars, %d chunks, ~%d slides",
            self._text_length, len(self._chunks), self._estimated_total,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ReaderSettings:
        return self._settings

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def processed_chunk_count(self) -> int:
        return sum(1 for c in self._chunks if c.processed)

    @property
    def is_fully_processed(self) -> bool:
        return all(c.processed for c in self._chunks)

    @property
    def state(self) -> ProcessingState:
        if self.is_fully_processed:
            return ProcessingState.COMPLETE
        if self.processed_chunk_count == 0:
            return ProcessingState.NOT_STARTED
        return ProcessingState.IN_PROGRESS

    @property
    def processed_slides_count(self) -> int:
        return len(self._slides)

    @property
    def total_estimated_slides(self) -> int:
        if self.is_fully_processed:
            return len(self._slides)
        return max(self._estimated_total, len(self._slides))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_slides(self, start_index: int, count: int) -> List[Slide]:
        """Return slides [start_index, start_index + count), processing as needed."""
        if count <= 0 or start_index < 0:
            return []
        self._ensure_processed(start_index, count)
        return self._slides[start_index:start_index + count]

    def get_slide(self, index: int) -> Optional[Slide]:
        """Return one slide, or None if the index is past the document end."""
        slides = self.get_slides(index, 1)
        return slides[0] if slides else None

    def get_stats(self) -> SlideShowData:
        """Statistics over the slides processed so far."""
        return calculate_stats(self._slides, self._settings)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def process_more(self) -> bool:
        """Process the next unprocessed chunk in document order.

        Returns:
            True if at least one chunk is still unprocessed afterwards.
        """
        if self._next_chunk >= len(self._chunks):
            return False
        self._process_chunk(self._next_chunk)
        self._next_chunk += 1
        return self._next_chunk < len(self._chunks)

    def process_all(self) -> None:
        """Synchronously process every remaining chunk."""
        while self._next_chunk < len(self._chunks):
            self._process_chunk(self._next_chunk)
            self._next_chunk += 1

    # ------------------------------------------------------------------
    # In-place updates
    # ------------------------------------------------------------------

    def rescale(self, new_wpm: float) -> None:
        """Rescale processed slides to a new WPM; later chunks use it too."""
        old_wpm = self._settings.wpm
        rescale_by_wpm(self._slides, old_wpm, new_wpm)
        self._settings = replace(self._settings, wpm=new_wpm)

    def recalculate_pixel_offsets(
        self,
        font: str,
        font_size: float,
        measurer: Optional[TextMeasurer] = None,
    ) -> None:
        """Recompute offsets of processed slides for a new font/size."""
        if measurer is not None:
            self._measurer = measurer
        recalculate_pixel_offsets(self._slides, font, font_size, self._measurer)
        self._settings = replace(self._settings, font=font, font_size=font_size)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _initial_estimate(self, text: str) -> int:
        if not self._chunks:
            return 0
        first = self._chunks[0]
        if first.processed and first.length > 0:
            density = len(first.slides) / first.length
            return math.ceil(self._text_length * density)
        words = len(text.split())
        return math.ceil(words / max(1, self._settings.chunk_size))

    def _process_chunk(self, index: int) -> None:
        if index < 0 or index >= len(self._chunks):
            return
        chunk = self._chunks[index]
        if chunk.processed:
            return

        is_last = index == len(self._chunks) - 1
        slides = tokenize_text(
            chunk.text,
            self._settings,
            self._measurer,
            final=is_last,
            line_break_after=chunk.line_break_follows,
        )
        apply_timing(slides, self._settings, self._information)

        offset = self._last_slide_number
        for slide in slides:
            slide.slide_number += offset
        if slides:
            self._last_slide_number = slides[-1].slide_number

        chunk.slide_start_index = len(self._slides)
        chunk.slides = list(slides)
        chunk.processed = True
        self._rebuild_slides()

        logger.debug(
            "Processed chunk %d/%d (%d slides, %d total)",
            index + 1, len(self._chunks), len(slides), len(self._slides),
        )

    def _rebuild_slides(self) -> None:
        slides: List[Slide] = []
        for chunk in self._chunks:
            if chunk.processed:
                slides.extend(chunk.slides)
        self._slides = slides

    def _slides_per_char(self) -> float:
        processed_chars = sum(c.length for c in self._chunks if c.processed)
        if processed_chars == 0:
            return 0.0
        return len(self._slides) / processed_chars

    def _ensure_processed(self, start_index: int, count: int) -> None:
        """Process chunks in order until the requested range is covered.

        The density of the processed prefix (slides per character) gives
        an estimated slide span for each unprocessed chunk. The walk finds
        the last chunk whose estimated span starts before the range end
        plus the read-ahead buffer, and every chunk up to it is processed
        in document order so slide indices stay global. Estimates can
        undershoot, so processing continues until the range is covered or
        the document is complete.
        """
        end_index = start_index + count
        target = end_index + self._slide_buffer
        density = self._slides_per_char()

        last_needed = -1
        slide_count = 0
        for index, chunk in enumerate(self._chunks):
            if slide_count >= target:
                break
            last_needed = index
            if chunk.processed:
                slide_count += len(chunk.slides)
            else:
                slide_count += math.ceil(chunk.length * density) or _FALLBACK_SLIDES_PER_CHUNK

        while self._next_chunk <= last_needed:
            self.process_more()

        while len(self._slides) < end_index and not self.is_fully_processed:
            self.process_more()


# ---------------------------------------------------------------------------
# Whole-document helpers (no tokenization)
# ---------------------------------------------------------------------------

_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
SECTION_PREVIEW_CHARS = 100


@dataclass
class ReadingEstimate:
    """Rough reading time for a text at a given speed."""

    words: int
    minutes: int
    seconds: int


@dataclass
class Section:
    """A paragraph-level span [start, end) of the source text."""

    start: int
    end: int
    preview: str


def estimate_reading_time(text: str, wpm: float) -> ReadingEstimate:
    """Estimate reading time from the whitespace word count alone.

    Cheap enough to call on a whole book before deciding how to load it;
    pauses and timing algorithms are ignored.
    """
    words = len(text.split())
    total_seconds = (words / wpm) * 60
    return ReadingEstimate(
        words=words,
        minutes=int(total_seconds // 60),
        seconds=round(total_seconds % 60),
    )


def _section(text: str, start: int, end: int) -> Section:
    body = text[start:end]
    preview = body[:SECTION_PREVIEW_CHARS].strip()
    if len(body) > SECTION_PREVIEW_CHARS:
        preview += "..."
    return Section(start=start, end=end, preview=preview)


def split_into_sections(text: str) -> List[Section]:
    """Split text on blank lines into navigable sections.

    RULES:
    - A blank line (newline, optional whitespace, newline) separates sections
    - Empty stretches between separators produce no section
    - preview is the first 100 chars, stripped, plus "..." when longer
    """
    sections: List[Section] = []
    last_end = 0
    for match in _PARAGRAPH_BREAK_RE.finditer(text):
        if match.start() > last_end:
            sections.append(_section(text, last_end, match.start()))
        last_end = match.end()
    if last_end < len(text):
        sections.append(_section(text, last_end, len(text)))
    return sections
