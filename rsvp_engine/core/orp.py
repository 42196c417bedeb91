"""Optimal recognition point (ORP) and pixel alignment offsets.

WHY: RSVP readers keep the eye still by drawing every slide so that its
fixation letter lands on the same screen column. The tokenizer needs the
fixation index for each slide, and the presentation layer needs the
horizontal distance from the start of the text to the middle of that
letter, re-computed whenever the display font or size changes.

HOW: calculate_orp() maps text length to a 1-based index. The pixel
offset uses a TextMeasurer when the host can measure text (PillowMeasurer
renders with Pillow's font metrics); otherwise it falls back to an
average-character-width estimate of 0.6 x font size.

RULES:
- length 1 -> 1; 2-4 -> 2; 5-9 -> 3; >= 10 -> 4
- measured offset = width(text before ORP letter) + width(ORP letter) / 2
- estimated offset = (orp - 0.5) * font_size * 0.6
- Offsets are never negative
- Pure functions: no slide is touched except by recalculate_pixel_offsets()
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Protocol, Tuple, Union

from PIL import ImageFont

from rsvp_engine.core.models import BlockSlide, Slide

logger = logging.getLogger(__name__)

AVG_CHAR_WIDTH_RATIO = 0.6


class TextMeasurer(Protocol):
    """Anything that can report the rendered width of a string in pixels."""

    def measure(self, text: str, font: str, size: float) -> float:
        ...


class PillowMeasurer:
    """TextMeasurer backed by Pillow font metrics.

    Fonts are resolved with ImageFont.truetype(), which accepts either a
    file path or a font name Pillow can find on the system. When the font
    cannot be loaded, Pillow's bundled default font is used at the same
    size so measurement still works on headless hosts.
    """

    def __init__(self) -> None:
        self._fonts: Dict[Tuple[str, float], Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]] = {}

    def _font(self, font: str, size: float):
        key = (font, size)
        cached = self._fonts.get(key)
        if cached is None:
            try:
                cached = ImageFont.truetype(font, size)
            except OSError:
                logger.debug("Font %s not found, using Pillow default font", font)
                cached = ImageFont.load_default(size)
            self._fonts[key] = cached
        return cached

    def measure(self, text: str, font: str, size: float) -> float:
        if not text:
            return 0.0
        return float(self._font(font, size).getlength(text))


def calculate_orp(text: str) -> int:
    """Return the 1-based optimal fixation index for a slide's text."""
    length = len(text)
    if length <= 1:
        return 1
    if length <= 4:
        return 2
    if length <= 9:
        return 3
    return 4


def calculate_pixel_offset(
    text: str,
    orp_position: int,
    font: str,
    font_size: float,
    measurer: Optional[TextMeasurer] = None,
) -> float:
    """Horizontal distance in pixels from the text start to the ORP letter's center.

    Args:
        text: Slide text.
        orp_position: 1-based fixation index.
        font: Font name or path passed to the measurer.
        font_size: Font size in pixels.
        measurer: Optional host text measurement; estimated when None.

    Returns:
        A non-negative pixel offset.
    """
    if measurer is None:
        avg_char_width = font_size * AVG_CHAR_WIDTH_RATIO
        return max(0.0, (orp_position - 0.5) * avg_char_width)

    before = text[: max(0, orp_position - 1)]
    letter = text[orp_position - 1: orp_position] if orp_position >= 1 else ""
    width_before = measurer.measure(before, font, font_size)
    letter_width = measurer.measure(letter, font, font_size)
    return max(0.0, width_before + letter_width / 2)


def recalculate_pixel_offsets(
    slides: Iterable[Slide],
    font: str,
    font_size: float,
    measurer: Optional[TextMeasurer] = None,
) -> None:
    """Recompute every slide's pixel offset in place after a font change.

    The fixation index is kept as-is; only ``pixel_offset`` changes, so
    no retokenization is needed. Block slides keep their zero offset.
    """
    for slide in slides:
        if isinstance(slide, BlockSlide):
            continue
        slide.pixel_offset = calculate_pixel_offset(
            slide.text,
            slide.optimal_letter_position,
            font,
            font_size,
            measurer,
        )
