"""Adapter from structured content blocks to one slide sequence.

WHY: Markdown and ebook sources are not just prose. A code listing, a
table or an image cannot be flashed one word at a time, and a heading
reads better as a single pause than as two quick words. An external
parser hands us typed blocks; this module decides how each kind becomes
slides and stitches the result into one consistently numbered sequence.

HOW: parse_blocks() validates JSON input with jsonschema against the
bundled content_blocks.schema.json and builds ContentBlock objects.
process_content() walks the blocks in order:
  text / blockquote / list  — tokenized and timed like plain text; the
                              slides remember their source block (lists
                              also carry the block metadata)
  code / table              — one BlockSlide, 500 ms per line, 3-15 s
  heading                   — one BlockSlide, 1500 ms
  image                     — one BlockSlide, 3000 ms
  hr                        — no slide

RULES:
- block_start_indices has exactly one entry per input block; an hr
  entry equals the index of the next slide
- Slide numbers are renumbered across blocks so they never decrease
- The end of every block pauses like a paragraph break; only the very
  last slide of the whole sequence has post_delay 0
- Block slides: orp 1, pixel offset 0, words = whitespace token count
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import jsonschema

from rsvp_engine.core.models import (
    BlockMetadata,
    BlockSlide,
    BlockType,
    ContentBlock,
    PlainSlide,
    ReaderSettings,
    Slide,
    SlideShowData,
)
from rsvp_engine.core.orp import TextMeasurer
from rsvp_engine.core.timing import InformationLookup, apply_timing, calculate_stats
from rsvp_engine.core.tokenizer import get_punctuation_delay, tokenize_text

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "data" / "content_blocks.schema.json"

_CACHED_SCHEMA: Optional[dict] = None

PROSE_BLOCKS = frozenset({BlockType.TEXT, BlockType.BLOCKQUOTE, BlockType.LIST})

LINE_DURATION_MS = 500
MIN_LINE_BLOCK_DURATION_MS = 3000
MAX_LINE_BLOCK_DURATION_MS = 15000
HEADING_DURATION_MS = 1500
IMAGE_DURATION_MS = 3000


class ContentValidationError(ValueError):
    """Raised when a block list does not match the content block schema."""


def _get_schema() -> dict:
    """Load and cache the content block JSON schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def parse_blocks(data: Any) -> List[ContentBlock]:
    """Validate decoded JSON and convert it into ContentBlocks.

    Args:
        data: A list of {"type", "content", "metadata"?} dicts.

    Returns:
        ContentBlocks in input order.

    Raises:
        ContentValidationError: If ``data`` does not match the schema.
    """
    try:
        jsonschema.validate(instance=data, schema=_get_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path)
        if location:
            message = "Invalid content block at {}: {}".format(location, exc.message)
        else:
            message = "Invalid content blocks: {}".format(exc.message)
        raise ContentValidationError(message) from None

    blocks: List[ContentBlock] = []
    for item in data:
        metadata = item.get("metadata")
        blocks.append(ContentBlock(
            type=BlockType(item["type"]),
            content=item["content"],
            metadata=BlockMetadata(**metadata) if metadata else None,
        ))
    return blocks


def block_duration(block_type: BlockType, content: str) -> float:
    """Fixed display time in ms for a block slide."""
    if block_type in (BlockType.CODE, BlockType.TABLE):
        line_count = len(content.split("\n"))
        return float(max(
            MIN_LINE_BLOCK_DURATION_MS,
            min(MAX_LINE_BLOCK_DURATION_MS, line_count * LINE_DURATION_MS),
        ))
    if block_type is BlockType.HEADING:
        return float(HEADING_DURATION_MS)
    if block_type is BlockType.IMAGE:
        return float(IMAGE_DURATION_MS)
    raise ValueError("{} blocks are not shown as block slides".format(block_type.value))


def create_block_slide(block: ContentBlock, settings: ReaderSettings) -> BlockSlide:
    """Build the single verbatim slide for a code, table, heading or image block."""
    block_type = BlockType(block.type)
    return BlockSlide(
        text=block.content,
        text_original=block.content,
        duration=block_duration(block_type, block.content),
        pre_delay=0.0,
        post_delay=settings.pause_after_paragraph_delay,
        wpm=settings.wpm,
        optimal_letter_position=1,
        pixel_offset=0.0,
        words_in_slide=max(1, len(block.content.split())),
        block_type=block_type,
        metadata=block.metadata,
    )


def _prose_slides(
    block: ContentBlock,
    settings: ReaderSettings,
    measurer: Optional[TextMeasurer],
    information: Optional[InformationLookup],
) -> List[PlainSlide]:
    block_type = BlockType(block.type)
    slides = tokenize_text(block.content, settings, measurer, final=False)
    apply_timing(slides, settings, information)
    for slide in slides:
        slide.source_block = block_type
        if block_type is BlockType.LIST:
            slide.metadata = block.metadata
    if slides:
        last = slides[-1]
        _, last.post_delay = get_punctuation_delay(last.text, settings, ends_paragraph=True)
    return slides


def process_content(
    blocks: Sequence[ContentBlock],
    settings: ReaderSettings,
    measurer: Optional[TextMeasurer] = None,
    information: Optional[InformationLookup] = None,
) -> Tuple[List[Slide], SlideShowData, List[int]]:
    """Turn an ordered block list into slides, stats and block start indices.

    Args:
        blocks: Parsed content blocks in document order.
        settings: Reader settings used for prose blocks and pauses.
        measurer: Optional text measurement for exact pixel offsets.
        information: Optional word information lookup for word_frequency.

    Returns:
        (slides, stats, block_start_indices)
    """
    all_slides: List[Slide] = []
    block_start_indices: List[int] = []
    slide_number = 0

    for block in blocks:
        block_start_indices.append(len(all_slides))
        block_type = BlockType(block.type)

        if block_type is BlockType.HR:
            continue

        if block_type in PROSE_BLOCKS:
            slides: List[Slide] = list(_prose_slides(block, settings, measurer, information))
        else:
            slides = [create_block_slide(block, settings)]

        for slide in slides:
            if not slide.is_continuation:
                slide_number += 1
            slide.slide_number = slide_number
        all_slides.extend(slides)

    if all_slides:
        all_slides[-1].post_delay = 0.0

    logger.debug("Processed %d blocks into %d slides", len(blocks), len(all_slides))
    return all_slides, calculate_stats(all_slides, settings), block_start_indices
