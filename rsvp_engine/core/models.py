"""Slide, settings, and content-block dataclasses shared by the pipeline.

WHY: The tokenizer, timing engine, chunked processor and content adapter
all pass the same handful of structures around. Declaring them once as
typed dataclasses gives every stage (and the HTTP/CLI surfaces) a single
contract for what a slide is and which reader settings exist.

HOW: Slide is the common base with every timing and layout field.
Two concrete variants are selected by the ``kind`` discriminant:
  PlainSlide  — ordinary RSVP text produced by the tokenizer; remembers
                which prose block (text, blockquote, list) it came from
  BlockSlide  — one verbatim non-prose block (code, table, heading,
                image) shown as a whole with a fixed or line-based duration
ReaderSettings carries the speed, grouping, pause and font options.
SlideShowData is the aggregate produced by the timing engine.

RULES:
- Durations and delays are float milliseconds
- optimal_letter_position is 1-based into ``text``
- slide_number is shared by all fragments of one split word; only the
  first fragment has is_continuation=False
- pre_delay is always 0 (reserved); post_delay comes from punctuation
- Slides are mutated in place only by WPM rescaling and pixel-offset
  recalculation
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


class BlockType(str, enum.Enum):
    """Content block kinds supplied by an external markdown/ebook parser."""

    TEXT = "text"
    CODE = "code"
    HEADING = "heading"
    BLOCKQUOTE = "blockquote"
    IMAGE = "image"
    LIST = "list"
    TABLE = "table"
    HR = "hr"


class TimingAlgorithm(str, enum.Enum):
    """Pacing algorithms understood by the timing engine.

    RULES:
    - basic: every word gets 60000 / wpm ms
    - word_length: a slide-count time budget spread by character count
    - word_frequency: duration interpolated from word information content
    """

    BASIC = "basic"
    WORD_LENGTH = "word_length"
    WORD_FREQUENCY = "word_frequency"


@dataclass
class BlockMetadata:
    """Block-specific presentation hints carried through to block slides."""

    language: Optional[str] = None  # code blocks
    level: Optional[int] = None  # headings (1-6)
    src: Optional[str] = None  # images
    alt: Optional[str] = None  # images
    ordered: Optional[bool] = None  # lists

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ContentBlock:
    """One structured block of a parsed document."""

    type: BlockType
    content: str
    metadata: Optional[BlockMetadata] = None


@dataclass
class ReaderSettings:
    """Reader options that influence tokenization, timing and layout.

    Attributes:
        wpm: Target words per minute.
        chunk_size: Words per slide (1-5).
        font: Font family or font file used for pixel offsets.
        font_size: Font size in pixels.
        algorithm: Pacing algorithm.
        pause_after_comma: Pause after , ; :
        pause_after_period: Pause after . ? !
        pause_after_paragraph: Pause after slides containing a newline.
        pause_after_comma_delay: Comma pause in ms.
        pause_after_period_delay: Sentence pause in ms.
        pause_after_paragraph_delay: Paragraph pause in ms.
        min_slide_duration: Floor applied after every timing algorithm.
        word_freq_high_duration: Per-word ms for very common words.
        word_freq_low_duration: Per-word ms for rare words.
    """

    wpm: float = 300
    chunk_size: int = 1
    font: str = "DejaVuSans"
    font_size: float = 48
    algorithm: TimingAlgorithm = TimingAlgorithm.BASIC
    pause_after_comma: bool = True
    pause_after_period: bool = True
    pause_after_paragraph: bool = True
    pause_after_comma_delay: float = 250
    pause_after_period_delay: float = 450
    pause_after_paragraph_delay: float = 700
    min_slide_duration: float = 50
    word_freq_high_duration: float = 40
    word_freq_low_duration: float = 300

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["algorithm"] = self.algorithm.value
        return data


@dataclass
class Slide:
    """Fields shared by every displayable slide.

    Use PlainSlide or BlockSlide; ``kind`` tells them apart after
    serialization.
    """

    text: str
    text_original: str = ""
    duration: float = 0.0
    pre_delay: float = 0.0
    post_delay: float = 0.0
    wpm: float = 0.0
    optimal_letter_position: int = 1
    pixel_offset: float = 0.0
    slide_number: int = 0
    words_in_slide: int = 1
    is_continuation: bool = False
    kind: str = field(default="", init=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, enum.Enum):
                data[key] = value.value
        if data.get("metadata") is not None:
            data["metadata"] = {k: v for k, v in data["metadata"].items() if v is not None}
        return data


@dataclass
class PlainSlide(Slide):
    """An RSVP text slide produced by the tokenizer."""

    source_block: BlockType = BlockType.TEXT
    metadata: Optional[BlockMetadata] = None
    kind: str = field(default="plain", init=False)


@dataclass
class BlockSlide(Slide):
    """A verbatim code/table/heading/image block shown as one slide."""

    block_type: BlockType = BlockType.CODE
    metadata: Optional[BlockMetadata] = None
    kind: str = field(default="block", init=False)


@dataclass
class SlideShowData:
    """Aggregate timing statistics for a slide sequence."""

    total_duration: float = 0.0
    total_duration_with_pauses: float = 0.0
    total_slides: int = 0
    min_duration: float = 0.0
    max_duration: float = 0.0
    real_wpm: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
