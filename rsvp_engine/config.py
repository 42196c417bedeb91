"""Configuration constants, environment overrides, and .env loading.

WHY: Reading speed, chunk budgets and server limits are tuning knobs
that operators change without touching code. Keeping them together as
plain module-level values makes them easy to find and override, and
lets the CLI, the HTTP API and the tests agree on one set of defaults.

HOW: python-dotenv loads the .env file on import. Each constant reads
its environment variable once, falling back to the documented default.
default_settings() builds a fresh ReaderSettings from those values and
validate_settings() checks the documented ranges for outer surfaces.

RULES:
- All defaults can be overridden via RSVP_* environment variables
- Malformed numeric values raise ValueError naming the variable
- The core pipeline never calls validate_settings(); range checks are a
  caller precondition and only the CLI / HTTP layers enforce them
- default_settings() returns a new object on every call (never shared)
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

from rsvp_engine.core.models import ReaderSettings, TimingAlgorithm

# Load .env from the project root (where the process is started from)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable with a clear error on bad input."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(
            "{} must be an integer, got '{}'.".format(name, raw)
        ) from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(
            "{} must be a number, got '{}'.".format(name, raw)
        ) from None


# ---------------------------------------------------------------------------
# Reader defaults
# ---------------------------------------------------------------------------

DEFAULT_WPM = _env_int("RSVP_DEFAULT_WPM", 300)
DEFAULT_CHUNK_SIZE = _env_int("RSVP_DEFAULT_CHUNK_SIZE", 1)
DEFAULT_ALGORITHM = os.getenv("RSVP_DEFAULT_ALGORITHM", TimingAlgorithm.BASIC.value)
DEFAULT_FONT = os.getenv("RSVP_DEFAULT_FONT", "DejaVuSans")
DEFAULT_FONT_SIZE = _env_int("RSVP_DEFAULT_FONT_SIZE", 48)
DEFAULT_MIN_SLIDE_DURATION = _env_float("RSVP_MIN_SLIDE_DURATION", 50.0)

MIN_WPM = 50
MAX_WPM = 2000
MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 5

# ---------------------------------------------------------------------------
# Chunked processing
# ---------------------------------------------------------------------------

CHUNK_CHARS = _env_int("RSVP_CHUNK_CHARS", 10000)
"""Character budget per chunk (~2000 words)."""

SLIDE_BUFFER = _env_int("RSVP_SLIDE_BUFFER", 500)
"""Slides processed past the requested end of a range read."""

LARGE_TEXT_THRESHOLD = _env_int("RSVP_LARGE_TEXT_THRESHOLD", 50000)
"""Texts longer than this (chars, ~10k words) are loaded through a chunked processor."""

# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------

SESSION_TTL_SECONDS = _env_int("RSVP_SESSION_TTL_SECONDS", 3600)
MAX_SESSIONS = _env_int("RSVP_MAX_SESSIONS", 100)
COMPLETION_INTERVAL = _env_float("RSVP_COMPLETION_INTERVAL", 0.05)
CHUNKS_PER_STEP = _env_int("RSVP_CHUNKS_PER_STEP", 3)
CLEANUP_INTERVAL = _env_float("RSVP_CLEANUP_INTERVAL", 300.0)


def parse_algorithm(value: str) -> TimingAlgorithm:
    """Resolve an algorithm name to a TimingAlgorithm.

    Accepts the enum value ("word_length") as well as the camelCase
    spelling used by older reader settings files ("wordLength").

    Raises:
        ValueError: If the name matches no algorithm.
    """
    normalized = value.strip()
    aliases = {
        "wordLength": TimingAlgorithm.WORD_LENGTH,
        "wordFrequency": TimingAlgorithm.WORD_FREQUENCY,
    }
    if normalized in aliases:
        return aliases[normalized]
    try:
        return TimingAlgorithm(normalized)
    except ValueError:
        available = ", ".join(a.value for a in TimingAlgorithm)
        raise ValueError(
            "Unknown timing algorithm '{}'. Available: {}".format(value, available)
        ) from None


def default_settings() -> ReaderSettings:
    """Build ReaderSettings from the configured defaults."""
    return ReaderSettings(
        wpm=DEFAULT_WPM,
        chunk_size=DEFAULT_CHUNK_SIZE,
        font=DEFAULT_FONT,
        font_size=DEFAULT_FONT_SIZE,
        algorithm=parse_algorithm(DEFAULT_ALGORITHM),
        min_slide_duration=DEFAULT_MIN_SLIDE_DURATION,
    )


def validate_settings(settings: ReaderSettings) -> None:
    """Check settings against the documented ranges.

    WHY: The pipeline trusts its caller. Surfaces that accept user input
    (CLI flags, HTTP bodies) call this first so a zero WPM or a
    ten-word slide is reported instead of silently producing odd timing.

    RULES:
    - wpm in [MIN_WPM, MAX_WPM]
    - chunk_size (words per slide) in [MIN_CHUNK_SIZE, MAX_CHUNK_SIZE]
    - font_size > 0, delays and min_slide_duration >= 0

    Raises:
        ValueError: Describing the first violated range.
    """
    if not MIN_WPM <= settings.wpm <= MAX_WPM:
        raise ValueError(
            "wpm must be between {} and {}, got {}.".format(MIN_WPM, MAX_WPM, settings.wpm)
        )
    if not MIN_CHUNK_SIZE <= settings.chunk_size <= MAX_CHUNK_SIZE:
        raise ValueError(
            "Words per slide must be between {} and {}, got {}.".format(
                MIN_CHUNK_SIZE, MAX_CHUNK_SIZE, settings.chunk_size
            )
        )
    if settings.font_size <= 0:
        raise ValueError("font_size must be positive, got {}.".format(settings.font_size))
    for name in (
        "pause_after_comma_delay",
        "pause_after_period_delay",
        "pause_after_paragraph_delay",
        "min_slide_duration",
        "word_freq_high_duration",
        "word_freq_low_duration",
    ):
        if getattr(settings, name) < 0:
            raise ValueError("{} must not be negative.".format(name))
