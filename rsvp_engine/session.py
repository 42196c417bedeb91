"""Reading session: one loaded document and the slides produced from it.

WHY: A reader loads a document, reads slides by index, changes speed or
font mid-read, and (for large documents) lets the rest be processed in
the background. Holding that state in one explicit value, instead of a
process-wide processor, lets the CLI, the HTTP server and the tests own
as many independent documents as they like, and makes "replace the
document" as simple as dropping the old session.

HOW: A session picks a loading strategy at construction:
  direct   — text up to LARGE_TEXT_THRESHOLD chars is run through
             process_text() once and kept as a slide list
  chunked  — longer text goes to a ChunkedProcessor; reads process what
             they need, advance() completes the rest a few chunks at a
             time when the owner calls it
CompletionState tracks background completion for chunked sessions.

RULES:
- A session owns exactly one document and one settings copy
- set_wpm() and set_font() mutate existing slides in place; chunks
  processed later use the new values
- advance() on a closed session does nothing and returns False
- Direct sessions are COMPLETE from the start
- progress is 0-100; it counts processed chunks, not slides
"""

from __future__ import annotations

import enum
import logging
import time
import uuid
from dataclasses import replace
from typing import List, Optional

from rsvp_engine.config import CHUNK_CHARS, LARGE_TEXT_THRESHOLD, SLIDE_BUFFER
from rsvp_engine.core.chunked import ChunkedProcessor, ProcessingState
from rsvp_engine.core.models import ReaderSettings, Slide, SlideShowData
from rsvp_engine.core.orp import TextMeasurer, recalculate_pixel_offsets
from rsvp_engine.core.pipeline import create_chunked_processor, process_text
from rsvp_engine.core.timing import InformationLookup, calculate_stats, rescale_by_wpm

logger = logging.getLogger(__name__)


class CompletionState(str, enum.Enum):
    """Background completion progress of a session.

    RULES:
    - not_started: slides are readable, background completion not begun
    - in_progress: advance() has run at least once, chunks remain
    - complete: every slide of the document exists
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class ReadingSession:
    """Owns the slides of one loaded document.

    Args:
        text: The document text.
        settings: Reader settings; copied, never shared with the caller.
        large_text_threshold: Character count above which the chunked
            processor is used.
        chunk_chars: Chunk size for the chunked processor.
        slide_buffer: Read-ahead buffer for the chunked processor.
        measurer: Optional text measurement for exact pixel offsets.
        information: Optional word information lookup.
    """

    def __init__(
        self,
        text: str,
        settings: ReaderSettings,
        large_text_threshold: int = LARGE_TEXT_THRESHOLD,
        chunk_chars: int = CHUNK_CHARS,
        slide_buffer: int = SLIDE_BUFFER,
        measurer: Optional[TextMeasurer] = None,
        information: Optional[InformationLookup] = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.created_at = time.time()
        self.last_access = self.created_at
        self.text_length = len(text)

        self._settings = replace(settings)
        self._measurer = measurer
        self._closed = False
        self._started = False
        self._slides: List[Slide] = []
        self._processor: Optional[ChunkedProcessor] = None

        if len(text) > large_text_threshold:
            self._processor = create_chunked_processor(
                text,
                self._settings,
                chunk_chars=chunk_chars,
                slide_buffer=slide_buffer,
                measurer=measurer,
                information=information,
            )
        else:
            self._slides = list(process_text(text, self._settings, measurer, information)[0])

        logger.info(
            "Session %s loaded %d chars (%s, ~%d slides)",
            self.id, len(text), "chunked" if self.is_chunked else "direct",
            self.total_slides,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ReaderSettings:
        return self._settings

    @property
    def is_chunked(self) -> bool:
        return self._processor is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def total_slides(self) -> int:
        """Exact slide count when complete, otherwise the running estimate."""
        if self._processor is not None:
            return self._processor.total_estimated_slides
        return len(self._slides)

    @property
    def processed_slides(self) -> int:
        if self._processor is not None:
            return self._processor.processed_slides_count
        return len(self._slides)

    @property
    def completion(self) -> CompletionState:
        if self._processor is None or self._processor.state is ProcessingState.COMPLETE:
            return CompletionState.COMPLETE
        if self._started:
            return CompletionState.IN_PROGRESS
        return CompletionState.NOT_STARTED

    @property
    def progress(self) -> float:
        """Percentage of the document processed (0-100)."""
        if self._processor is None or self._processor.chunk_count == 0:
            return 100.0
        done = self._processor.processed_chunk_count
        return round(done / self._processor.chunk_count * 100, 1)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def slides(self, start: int, count: int) -> List[Slide]:
        """Return up to ``count`` slides beginning at ``start``."""
        self.touch()
        if self._processor is not None:
            return self._processor.get_slides(start, count)
        if count <= 0 or start < 0:
            return []
        return self._slides[start:start + count]

    def slide(self, index: int) -> Optional[Slide]:
        """Return one slide, or None when ``index`` is past the end."""
        found = self.slides(index, 1)
        return found[0] if found else None

    def stats(self) -> SlideShowData:
        """Statistics over the slides known so far."""
        if self._processor is not None:
            return self._processor.get_stats()
        return calculate_stats(self._slides, self._settings)

    # ------------------------------------------------------------------
    # Background completion
    # ------------------------------------------------------------------

    def advance(self, max_chunks: int = 1) -> bool:
        """Run one cooperative completion step.

        Processes up to ``max_chunks`` chunks in document order.

        Returns:
            True while chunks remain to be processed.
        """
        if self._closed or self._processor is None:
            return False
        self._started = True
        remaining = not self._processor.is_fully_processed
        for _ in range(max(1, max_chunks)):
            remaining = self._processor.process_more()
            if not remaining:
                break
        if not remaining:
            logger.info("Session %s fully processed (%d slides)", self.id, self.total_slides)
        return remaining

    def finish(self) -> None:
        """Process everything that is left, synchronously."""
        if self._processor is not None and not self._closed:
            self._started = True
            self._processor.process_all()

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def set_wpm(self, wpm: float) -> None:
        """Rescale every slide to a new speed without retokenizing."""
        if wpm == self._settings.wpm:
            return
        if self._processor is not None:
            self._processor.rescale(wpm)
        else:
            rescale_by_wpm(self._slides, self._settings.wpm, wpm)
        self._settings = replace(self._settings, wpm=wpm)

    def set_font(self, font: str, font_size: float) -> None:
        """Recompute pixel offsets for a new display font."""
        if self._processor is not None:
            self._processor.recalculate_pixel_offsets(font, font_size, self._measurer)
        else:
            recalculate_pixel_offsets(self._slides, font, font_size, self._measurer)
        self._settings = replace(self._settings, font=font, font_size=font_size)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def touch(self) -> None:
        self.last_access = time.time()

    def close(self) -> None:
        """Discard the session; background completion stops for good."""
        self._closed = True
