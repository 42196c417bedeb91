"""Slide timing algorithms, aggregate statistics, and live WPM rescaling.

WHY: A slide sequence is only readable at the intended speed once every
slide has a display duration. Readers differ in what they want: equal
time per word, more time for longer slides, or more time for surprising
words. The presentation layer also needs totals (reading time, realized
WPM) and a cheap way to change speed mid-read.

HOW: apply_timing() dispatches on settings.algorithm to one of three
in-place algorithms:
  basic          — (60 / wpm) * 1000 ms per word
  word_length    — a budget of slide_count / wpm minutes spread across
                   slides in proportion to their character count
  word_frequency — linear interpolation between a short duration at
                   INFO_LOW bits and a long duration at INFO_HIGH bits,
                   on the mean information of the slide's words
calculate_stats() summarizes a slide list; rescale_by_wpm() multiplies
durations by old_wpm / new_wpm without re-running any algorithm.

RULES:
- Every algorithm clamps duration to >= settings.min_slide_duration
- word_length budgets by slide count, not word count
- Block slides keep their fixed durations (only PlainSlides are timed)
- calculate_stats() is pure; real_wpm is rounded, or settings.wpm when
  the total duration is 0
- rescale_by_wpm() preserves the relative pacing shape
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence

from rsvp_engine.core.frequency import INFO_HIGH, INFO_LOW, get_word_information
from rsvp_engine.core.models import (
    BlockSlide,
    ReaderSettings,
    Slide,
    SlideShowData,
    TimingAlgorithm,
)

InformationLookup = Callable[[str], float]

_ENCLOSING_PUNCT_RE = re.compile(r"^[\W_]+|[\W_]+$", re.UNICODE)


def _timed(slides: Sequence[Slide]) -> List[Slide]:
    return [s for s in slides if not isinstance(s, BlockSlide)]


def _clamp(duration: float, settings: ReaderSettings) -> float:
    return max(duration, settings.min_slide_duration)


def apply_basic_timing(slides: Sequence[Slide], settings: ReaderSettings) -> None:
    """Give every word the same display time."""
    per_word = (60 / settings.wpm) * 1000
    for slide in _timed(slides):
        slide.duration = _clamp(per_word * slide.words_in_slide, settings)


def apply_word_length_timing(slides: Sequence[Slide], settings: ReaderSettings) -> None:
    """Spread a slide-count time budget over slides by character count.

    The budget is (slide_count / wpm) minutes, so with several words per
    slide this runs faster than basic timing for the same WPM.
    """
    timed = _timed(slides)
    if not timed:
        return

    total_target = (len(timed) / settings.wpm) * 60000
    total_length = sum(len(s.text) for s in timed)
    per_char = total_target / total_length if total_length else 0.0

    for slide in timed:
        slide.duration = _clamp(per_char * len(slide.text), settings)


def apply_word_frequency_timing(
    slides: Sequence[Slide],
    settings: ReaderSettings,
    information: Optional[InformationLookup] = None,
) -> None:
    """Time slides by the Shannon information of their words.

    Common words get close to word_freq_high_duration per word, rare
    words close to word_freq_low_duration.

    Args:
        slides: Slides to time in place.
        settings: Reader settings with the duration bounds.
        information: Word -> bits lookup; defaults to the bundled table.
    """
    lookup = information or get_word_information
    dur_short = settings.word_freq_high_duration
    dur_long = settings.word_freq_low_duration

    # duration = a * information + b
    a = (dur_long - dur_short) / (INFO_HIGH - INFO_LOW)
    b = dur_short - INFO_LOW * a

    for slide in _timed(slides):
        words = slide.text.split()
        total_info = 0.0
        for word in words:
            clean = _ENCLOSING_PUNCT_RE.sub("", word)
            if clean:
                total_info += lookup(clean)
        avg_info = total_info / len(words) if words else INFO_HIGH
        slide.duration = _clamp((a * avg_info + b) * slide.words_in_slide, settings)


def apply_timing(
    slides: Sequence[Slide],
    settings: ReaderSettings,
    information: Optional[InformationLookup] = None,
) -> None:
    """Set every slide's duration using settings.algorithm."""
    algorithm = TimingAlgorithm(settings.algorithm)
    if algorithm is TimingAlgorithm.WORD_LENGTH:
        apply_word_length_timing(slides, settings)
    elif algorithm is TimingAlgorithm.WORD_FREQUENCY:
        apply_word_frequency_timing(slides, settings, information)
    else:
        apply_basic_timing(slides, settings)


def calculate_stats(slides: Sequence[Slide], settings: ReaderSettings) -> SlideShowData:
    """Summarize durations, pauses and realized reading speed.

    Returns an all-zero SlideShowData for an empty sequence.
    """
    if not slides:
        return SlideShowData()

    total_duration = 0.0
    total_with_pauses = 0.0
    total_words = 0
    min_duration = slides[0].duration
    max_duration = slides[0].duration

    for slide in slides:
        total_duration += slide.duration
        total_with_pauses += slide.duration + slide.pre_delay + slide.post_delay
        total_words += slide.words_in_slide
        min_duration = min(min_duration, slide.duration)
        max_duration = max(max_duration, slide.duration)

    if total_duration > 0:
        real_wpm = round((total_words / total_duration) * 60000)
    else:
        real_wpm = round(settings.wpm)

    return SlideShowData(
        total_duration=total_duration,
        total_duration_with_pauses=total_with_pauses,
        total_slides=len(slides),
        min_duration=min_duration,
        max_duration=max_duration,
        real_wpm=real_wpm,
    )


def rescale_by_wpm(slides: Sequence[Slide], old_wpm: float, new_wpm: float) -> None:
    """Scale durations in place for a live speed change.

    Every duration is multiplied by old_wpm / new_wpm and the slide's
    wpm tag is set to new_wpm. The timing algorithm is not re-run.
    """
    ratio = old_wpm / new_wpm
    for slide in slides:
        slide.duration *= ratio
        slide.wpm = new_wpm
