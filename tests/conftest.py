"""Shared test fixtures for the rsvp_engine test suite.

WHY: Most test modules need the same reader settings, a deterministic
text measurer, and a document long enough to span many chunks.
Centralizing them keeps the numbers in assertions easy to follow.

HOW: Plain pytest fixtures plus a FakeMeasurer whose widths are a fixed
number of pixels per character, so measured offsets can be computed by
hand.

RULES:
- settings() is a fresh ReaderSettings at the documented defaults
  (300 wpm, one word per slide, basic timing)
- long_text() is built from plain sentences with no hyphens and no
  words over 17 chars, so slide counts are predictable
"""

from typing import List

import pytest

from rsvp_engine.core.models import ReaderSettings


class FakeMeasurer:
    """TextMeasurer stub: every character is ``char_width`` pixels wide."""

    def __init__(self, char_width: float = 10.0) -> None:
        self.char_width = char_width
        self.calls: List[tuple] = []

    def measure(self, text: str, font: str, size: float) -> float:
        self.calls.append((text, font, size))
        return len(text) * self.char_width


SENTENCES = [
    "The quick brown fox jumps over the lazy dog.",
    "Reading one word at a time keeps the eyes still,",
    "so the brain can focus on meaning instead of movement.",
    "Short words flash by quickly; rare words linger a little longer!",
]


def build_long_text(paragraphs: int = 40) -> str:
    """Paragraphs of four sentences separated by blank lines."""
    return "\n\n".join(" ".join(SENTENCES) for _ in range(paragraphs))


@pytest.fixture
def settings():
    """Default reader settings."""
    return ReaderSettings()


@pytest.fixture
def fake_measurer():
    return FakeMeasurer()


@pytest.fixture
def long_text():
    """About 9,000 characters of prose in 40 paragraphs."""
    return build_long_text()
