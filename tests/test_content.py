"""Tests for the content-block adapter and block schema validation.

WHY: Structured documents mix prose with code, tables, headings and
images. The adapter must give each block kind the right slides and keep
one consistent numbering and block index across the whole sequence.

HOW:
  - TestParseBlocks: jsonschema validation and conversion
  - TestBlockSlides: verbatim slides and their fixed durations
  - TestProcessContent: the combined sequence
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from rsvp_engine.core.content import (
    ContentValidationError,
    create_block_slide,
    parse_blocks,
    process_content,
)
from rsvp_engine.core.models import (
    BlockMetadata,
    BlockSlide,
    BlockType,
    ContentBlock,
    PlainSlide,
    TimingAlgorithm,
)

SAMPLE_BLOCKS = [
    {"type": "heading", "content": "Title", "metadata": {"level": 1}},
    {"type": "text", "content": "Hello world."},
    {"type": "hr", "content": ""},
    {"type": "code", "content": "a = 1\nb = 2", "metadata": {"language": "python"}},
    {"type": "image", "content": "", "metadata": {"src": "fox.png", "alt": "A fox"}},
    {"type": "list", "content": "one two", "metadata": {"ordered": True}},
]


@pytest.fixture
def sample_blocks():
    return parse_blocks(SAMPLE_BLOCKS)


# ---------------------------------------------------------------------------
# TestParseBlocks
# ---------------------------------------------------------------------------


class TestParseBlocks:
    """Block lists are validated against the bundled JSON schema."""

    def test_valid_blocks(self, sample_blocks):
        assert [b.type for b in sample_blocks] == [
            BlockType.HEADING,
            BlockType.TEXT,
            BlockType.HR,
            BlockType.CODE,
            BlockType.IMAGE,
            BlockType.LIST,
        ]
        assert sample_blocks[0].metadata == BlockMetadata(level=1)
        assert sample_blocks[1].metadata is None

    def test_unknown_type(self):
        with pytest.raises(ContentValidationError, match="0/type"):
            parse_blocks([{"type": "video", "content": "x"}])

    def test_missing_content(self):
        with pytest.raises(ContentValidationError):
            parse_blocks([{"type": "text"}])

    def test_heading_level_range(self):
        with pytest.raises(ContentValidationError):
            parse_blocks([{"type": "heading", "content": "H", "metadata": {"level": 7}}])

    def test_not_a_list(self):
        with pytest.raises(ContentValidationError, match="Invalid content blocks"):
            parse_blocks({"type": "text", "content": "x"})

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_blocks([{"type": "text", "content": 5}])


# ---------------------------------------------------------------------------
# TestBlockSlides
# ---------------------------------------------------------------------------


class TestBlockSlides:
    """Verbatim slides for non-prose blocks."""

    @pytest.mark.parametrize("lines,expected", [(1, 3000), (10, 5000), (40, 15000)])
    def test_code_duration_by_lines(self, settings, lines, expected):
        block = ContentBlock(type=BlockType.CODE, content="\n".join(["x"] * lines))
        assert create_block_slide(block, settings).duration == expected

    def test_table_uses_line_duration(self, settings):
        block = ContentBlock(type=BlockType.TABLE, content="\n".join(["| a |"] * 8))
        assert create_block_slide(block, settings).duration == 4000

    def test_heading_and_image_durations(self, settings):
        heading = ContentBlock(type=BlockType.HEADING, content="Chapter One")
        image = ContentBlock(type=BlockType.IMAGE, content="")
        assert create_block_slide(heading, settings).duration == 1500
        assert create_block_slide(image, settings).duration == 3000

    def test_block_slide_fields(self, settings):
        block = ContentBlock(
            type=BlockType.CODE,
            content="print('hello world')",
            metadata=BlockMetadata(language="python"),
        )
        slide = create_block_slide(block, settings)
        assert isinstance(slide, BlockSlide)
        assert slide.kind == "block"
        assert slide.text == slide.text_original == "print('hello world')"
        assert slide.block_type is BlockType.CODE
        assert slide.post_delay == settings.pause_after_paragraph_delay
        assert slide.optimal_letter_position == 1
        assert slide.pixel_offset == 0
        assert slide.words_in_slide == 2
        assert slide.metadata.language == "python"

    def test_hr_is_not_a_block_slide(self, settings):
        with pytest.raises(ValueError):
            create_block_slide(ContentBlock(type=BlockType.HR, content=""), settings)


# ---------------------------------------------------------------------------
# TestProcessContent
# ---------------------------------------------------------------------------


class TestProcessContent:
    """The combined slide sequence for a block list."""

    def test_block_start_indices(self, settings, sample_blocks):
        _, _, indices = process_content(sample_blocks, settings)
        assert indices == [0, 1, 3, 3, 4, 5]

    def test_slide_kinds(self, settings, sample_blocks):
        slides, _, _ = process_content(sample_blocks, settings)
        assert [s.kind for s in slides] == [
            "block", "plain", "plain", "block", "block", "plain", "plain",
        ]
        assert [s.text for s in slides[1:3]] == ["Hello", "world."]

    def test_slides_remember_source_block(self, settings, sample_blocks):
        slides, _, _ = process_content(sample_blocks, settings)
        assert slides[1].source_block is BlockType.TEXT
        assert slides[1].metadata is None
        assert slides[5].source_block is BlockType.LIST
        assert slides[5].metadata.ordered is True

    def test_slide_numbers_are_global(self, settings, sample_blocks):
        slides, _, _ = process_content(sample_blocks, settings)
        assert [s.slide_number for s in slides] == [1, 2, 3, 4, 5, 6, 7]

    def test_block_ends_pause_like_paragraphs(self, settings, sample_blocks):
        slides, _, _ = process_content(sample_blocks, settings)
        assert slides[0].post_delay == 700
        assert slides[2].post_delay == 700
        assert slides[-1].post_delay == 0

    def test_stats_cover_all_slides(self, settings, sample_blocks):
        slides, stats, _ = process_content(sample_blocks, settings)
        assert stats.total_slides == len(slides)
        assert stats.max_duration == 3000

    def test_timing_algorithm_only_touches_prose(self, settings, sample_blocks):
        settings = replace(settings, algorithm=TimingAlgorithm.WORD_LENGTH)
        slides, _, _ = process_content(sample_blocks, settings)
        assert slides[0].duration == 1500
        assert slides[3].duration == 3000

    def test_continuations_share_numbers(self, settings):
        blocks = [
            ContentBlock(type=BlockType.TEXT, content="A well-known-author"),
            ContentBlock(type=BlockType.BLOCKQUOTE, content="quoted"),
        ]
        slides, _, _ = process_content(blocks, settings)
        assert [s.slide_number for s in slides] == [1, 2, 2, 2, 3]
        assert slides[-1].source_block is BlockType.BLOCKQUOTE
        assert all(isinstance(s, PlainSlide) for s in slides)

    def test_empty(self, settings):
        slides, stats, indices = process_content([], settings)
        assert slides == []
        assert stats.total_slides == 0
        assert indices == []

    def test_only_hr(self, settings):
        slides, _, indices = process_content(
            [ContentBlock(type=BlockType.HR, content="---")], settings
        )
        assert slides == []
        assert indices == [0]

    def test_to_dict_serializes_enums(self, settings, sample_blocks):
        slides, _, _ = process_content(sample_blocks, settings)
        heading = slides[0].to_dict()
        assert heading["block_type"] == "heading"
        assert heading["metadata"] == {"level": 1}
        assert slides[5].to_dict()["source_block"] == "list"
