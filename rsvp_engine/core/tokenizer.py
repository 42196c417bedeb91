"""Text tokenization into RSVP slides.

WHY: Free-form text has to become a sequence of short, evenly readable
display units. Long compounds and very long words are hard to take in
at a glance, punctuation should stay with its word, and clause or
sentence ends are natural places to cut a multi-word slide short.

HOW: Two passes over the text, then grouping:
  1. _split_first_pass() — decode HTML entities, add a space after
     sentence/clause punctuation, split on whitespace, and fragment
     hyphenated and over-long words (only when one word per slide)
  2. _drop_empty_units() — remove empty and punctuation-only units
  3. tokenize_text() — group units into slides of up to chunk_size
     words, then compute the fixation index, pixel offset and pauses

RULES:
- Fragmentation applies only when settings.chunk_size == 1
- Two-part hyphenated words of <= 12 chars stay intact ("co-founder")
- Other hyphenated words split at each hyphen; non-final parts keep a
  trailing hyphen
- Words (or hyphen parts) longer than 17 chars split into <= 10 char
  pieces, preferring a break right after a vowel that precedes a
  consonant; non-final pieces get a trailing hyphen
- All fragments of one source word share a slide number; only the
  first is not a continuation
- A group ends early after a unit ending in , ; : . ? ! or at a line break
- The last slide of a final sequence has post_delay == 0
- Empty or punctuation-only input yields [] (never raises)
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from rsvp_engine.core.models import PlainSlide, ReaderSettings
from rsvp_engine.core.orp import TextMeasurer, calculate_orp, calculate_pixel_offset

# Space is inserted after these when the next char is not whitespace.
_ATTACH_PUNCT_RE = re.compile(r"([.,?!:;])(?!\s)")
_WORD_RE = re.compile(r"\S+")

CLAUSE_PUNCTUATION = frozenset(",;:")
SENTENCE_PUNCTUATION = frozenset(".?!")
GROUP_BREAK_PUNCTUATION = CLAUSE_PUNCTUATION | SENTENCE_PUNCTUATION

MAX_HYPHENATED_INTACT_LENGTH = 12
LONG_WORD_LENGTH = 17
LONG_WORD_PIECE_LENGTH = 10

_VOWELS = frozenset("aeiou")


@dataclass
class _WordUnit:
    """One word or word fragment before grouping."""

    text: str
    text_original: str
    slide_number: int
    is_continuation: bool = False
    ends_paragraph: bool = False


def normalize_text(text: str) -> str:
    """Decode HTML entities and make sure punctuation is followed by whitespace."""
    return _ATTACH_PUNCT_RE.sub(r"\1 ", html.unescape(text))


def split_long_word(word: str, max_length: int = LONG_WORD_PIECE_LENGTH) -> List[str]:
    """Split a long word into pieces of at most ``max_length`` characters.

    For each piece, scans backward from max_length - 2 to max_length // 2
    for a vowel followed by a non-vowel and breaks right after the vowel.
    Without such a point the piece is cut at exactly max_length.
    """
    pieces: List[str] = []
    remaining = word

    while len(remaining) > max_length:
        break_point = max_length
        for i in range(max_length - 2, max_length // 2 - 1, -1):
            char = remaining[i].lower()
            next_char = remaining[i + 1].lower()
            if char in _VOWELS and next_char not in _VOWELS:
                break_point = i + 1
                break
        pieces.append(remaining[:break_point])
        remaining = remaining[break_point:]

    if remaining:
        pieces.append(remaining)
    return pieces


def _fragment_word(word: str) -> List[str]:
    """Return the display fragments for one whitespace-delimited word.

    Only called when a slide holds one word. The result always has at
    least one element unless the word consists solely of hyphens.
    """
    if "-" in word and len(word) > 1:
        parts = word.split("-")
        if len(parts) == 2 and len(word) <= MAX_HYPHENATED_INTACT_LENGTH:
            return [word]
    else:
        parts = [word]

    fragments: List[str] = []
    last_index = len(parts) - 1
    for idx, part in enumerate(parts):
        if not part:
            continue
        pieces = split_long_word(part) if len(part) > LONG_WORD_LENGTH else [part]
        for piece_idx, piece in enumerate(pieces):
            is_last_piece = piece_idx == len(pieces) - 1
            if not is_last_piece or idx < last_index:
                piece = piece + "-"
            fragments.append(piece)
    return fragments


def _split_first_pass(text: str, settings: ReaderSettings) -> List[_WordUnit]:
    """Split normalized text into word units, fragmenting where needed."""
    units: List[_WordUnit] = []
    if not text:
        return units

    normalized = normalize_text(text)
    fragment = settings.chunk_size == 1
    slide_number = 0

    for match in _WORD_RE.finditer(normalized):
        word = match.group(0)
        ends_paragraph = _line_break_follows(normalized, match.end())

        pieces = _fragment_word(word) if fragment else [word]
        if not pieces:
            continue

        slide_number += 1
        for idx, piece in enumerate(pieces):
            units.append(_WordUnit(
                text=piece,
                text_original=word,
                slide_number=slide_number,
                is_continuation=idx > 0,
                ends_paragraph=ends_paragraph and idx == len(pieces) - 1,
            ))

    return units


def _line_break_follows(text: str, start: int) -> bool:
    """True if the whitespace run beginning at ``start`` contains a line break."""
    end = start
    while end < len(text) and text[end].isspace():
        if text[end] in "\r\n":
            return True
        end += 1
    return False


def is_punctuation_only(text: str) -> bool:
    """True if text has no letters or digits (only punctuation, symbols, space)."""
    return not any(ch.isalnum() for ch in text)


def _drop_empty_units(units: List[_WordUnit]) -> List[_WordUnit]:
    """Remove empty and punctuation-only units.

    When the first fragment of a word is dropped, the next surviving
    fragment of that word becomes its lead (is_continuation=False).
    """
    kept: List[_WordUnit] = []
    for unit in units:
        if not unit.text or not unit.text.strip() or is_punctuation_only(unit.text):
            continue
        if unit.is_continuation and (not kept or kept[-1].slide_number != unit.slide_number):
            unit.is_continuation = False
        kept.append(unit)
    return kept


def get_punctuation_delay(
    text: str,
    settings: ReaderSettings,
    ends_paragraph: bool = False,
) -> Tuple[float, float]:
    """Return (pre_delay, post_delay) for a slide's text.

    The sentence check runs after the clause check, and a paragraph
    break raises the pause to at least the paragraph delay.
    """
    pre_delay = 0.0
    post_delay = 0.0
    last_char = text[-1:]

    if last_char in CLAUSE_PUNCTUATION:
        post_delay = settings.pause_after_comma_delay if settings.pause_after_comma else 0.0

    if last_char in SENTENCE_PUNCTUATION:
        post_delay = settings.pause_after_period_delay if settings.pause_after_period else 0.0

    if ends_paragraph or "\n" in text or "\r" in text:
        if settings.pause_after_paragraph:
            post_delay = max(post_delay, settings.pause_after_paragraph_delay)

    return pre_delay, post_delay


def tokenize_text(
    text: str,
    settings: ReaderSettings,
    measurer: Optional[TextMeasurer] = None,
    final: bool = True,
    line_break_after: bool = False,
) -> List[PlainSlide]:
    """Convert text into untimed slides.

    Args:
        text: Raw input text (may contain HTML entities).
        settings: Reader settings; chunk_size, pauses and font are used here.
        measurer: Optional text measurement for exact pixel offsets.
        final: When True the sequence is complete and its last slide's
               post_delay is forced to 0. The chunked processor passes
               False for every chunk except the last.
        line_break_after: The text is followed by a line break that is
               not part of it, so its last word ends a paragraph.

    Returns:
        Slides in reading order with duration 0 (see timing.apply_timing).
    """
    units = _split_first_pass(text, settings)
    if line_break_after and units:
        units[-1].ends_paragraph = True
    units = _drop_empty_units(units)
    slides: List[PlainSlide] = []
    slide_number = 0
    chunk_size = max(1, settings.chunk_size)

    i = 0
    while i < len(units):
        group: List[_WordUnit] = []
        while len(group) < chunk_size and i + len(group) < len(units):
            unit = units[i + len(group)]
            group.append(unit)
            if (
                unit.text[-1:] in GROUP_BREAK_PUNCTUATION
                or "\n" in unit.text
                or unit.ends_paragraph
            ):
                break

        first = group[0]
        if not first.is_continuation:
            slide_number += 1

        slide_text = " ".join(u.text for u in group).strip()
        if len(group) == 1:
            text_original = first.text_original
        else:
            text_original = " ".join(u.text_original for u in group)

        orp = calculate_orp(slide_text)
        pre_delay, post_delay = get_punctuation_delay(
            slide_text, settings, ends_paragraph=group[-1].ends_paragraph
        )

        slides.append(PlainSlide(
            text=slide_text,
            text_original=text_original,
            pre_delay=pre_delay,
            post_delay=post_delay,
            wpm=settings.wpm,
            optimal_letter_position=orp,
            pixel_offset=calculate_pixel_offset(
                slide_text, orp, settings.font, settings.font_size, measurer
            ),
            slide_number=slide_number,
            words_in_slide=len(group),
            is_continuation=first.is_continuation,
        ))
        i += len(group)

    if final and slides:
        slides[-1].post_delay = 0.0

    return slides
