"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. Pydantic
models enforce field ranges at the boundary so the core pipeline only
ever sees settings inside their documented limits.

HOW: Requests carry the text (or block list) plus an optional
SettingsModel; to_settings() turns it into a ReaderSettings starting
from the configured defaults. Responses mirror the core dataclasses:
SlideModel for both slide kinds (``kind`` tells them apart), StatsModel
for SlideShowData.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Settings ranges match config.validate_settings()
- Content blocks are passed through as raw dicts and validated against
  the JSON schema by the core, so both surfaces report the same errors
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from rsvp_engine.config import (
    MAX_CHUNK_SIZE,
    MAX_WPM,
    MIN_CHUNK_SIZE,
    MIN_WPM,
    default_settings,
    parse_algorithm,
)
from rsvp_engine.core.models import ReaderSettings, Slide, SlideShowData


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SettingsModel(BaseModel):
    """Reader settings overrides; omitted fields use the server defaults."""

    wpm: Optional[float] = Field(default=None, ge=MIN_WPM, le=MAX_WPM, description="Target words per minute.")
    words_per_slide: Optional[int] = Field(
        default=None,
        ge=MIN_CHUNK_SIZE,
        le=MAX_CHUNK_SIZE,
        description="Maximum words shown on one slide.",
    )
    algorithm: Optional[str] = Field(
        default=None,
        description="Timing algorithm: basic, word_length or word_frequency.",
    )
    font: Optional[str] = Field(default=None, description="Font name or file used for pixel offsets.")
    font_size: Optional[float] = Field(default=None, gt=0, description="Font size in pixels.")
    pause_after_comma: Optional[bool] = Field(default=None, description="Pause after , ; :")
    pause_after_period: Optional[bool] = Field(default=None, description="Pause after . ? !")
    pause_after_paragraph: Optional[bool] = Field(default=None, description="Pause at paragraph ends.")
    pause_after_comma_delay: Optional[float] = Field(default=None, ge=0, description="Comma pause (ms).")
    pause_after_period_delay: Optional[float] = Field(default=None, ge=0, description="Sentence pause (ms).")
    pause_after_paragraph_delay: Optional[float] = Field(default=None, ge=0, description="Paragraph pause (ms).")
    min_slide_duration: Optional[float] = Field(default=None, ge=0, description="Minimum slide duration (ms).")
    word_freq_high_duration: Optional[float] = Field(
        default=None,
        ge=0,
        description="word_frequency: per-word duration for the most common words (ms).",
    )
    word_freq_low_duration: Optional[float] = Field(
        default=None,
        ge=0,
        description="word_frequency: per-word duration for the rarest words (ms).",
    )

    def to_settings(self) -> ReaderSettings:
        """Apply the overrides to the configured default settings.

        Raises:
            ValueError: If the algorithm name is unknown.
        """
        overrides: Dict[str, Any] = self.model_dump(exclude_none=True)
        if "words_per_slide" in overrides:
            overrides["chunk_size"] = overrides.pop("words_per_slide")
        if "algorithm" in overrides:
            overrides["algorithm"] = parse_algorithm(overrides["algorithm"])
        return replace(default_settings(), **overrides)


class TextRequest(BaseModel):
    """Text to turn into slides."""

    text: str = Field(description="Raw document text.")
    settings: Optional[SettingsModel] = Field(default=None, description="Reader settings overrides.")

    model_config = {"json_schema_extra": {
        "examples": [
            {"text": "The quick brown fox jumps over the lazy dog.", "settings": {"wpm": 400}}
        ]
    }}


class ContentRequest(BaseModel):
    """Structured content blocks to turn into slides."""

    blocks: List[Dict[str, Any]] = Field(
        description="Ordered content blocks: {type, content, metadata?}.",
    )
    settings: Optional[SettingsModel] = Field(default=None, description="Reader settings overrides.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "blocks": [
                    {"type": "heading", "content": "Chapter One", "metadata": {"level": 1}},
                    {"type": "text", "content": "It was a bright cold day in April."},
                    {"type": "code", "content": "print('hi')", "metadata": {"language": "python"}},
                ]
            }
        ]
    }}


class SettingsUpdate(BaseModel):
    """Live changes applied to an open session without retokenizing."""

    wpm: Optional[float] = Field(default=None, ge=MIN_WPM, le=MAX_WPM, description="New words per minute.")
    font: Optional[str] = Field(default=None, description="New font name or file.")
    font_size: Optional[float] = Field(default=None, gt=0, description="New font size in pixels.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SlideModel(BaseModel):
    """One displayable slide (plain RSVP text or a verbatim block)."""

    kind: str = Field(description="'plain' or 'block'.")
    text: str = Field(description="Display text.")
    text_original: str = Field(description="Source text the slide came from.")
    duration: float = Field(description="Display time in ms.")
    pre_delay: float = Field(description="Pause before the slide in ms.")
    post_delay: float = Field(description="Pause after the slide in ms.")
    wpm: float = Field(description="Words per minute the duration was computed for.")
    optimal_letter_position: int = Field(description="1-based fixation letter index.")
    pixel_offset: float = Field(description="Pixels from text start to the fixation letter center.")
    slide_number: int = Field(description="Source word number; shared by fragments of one word.")
    words_in_slide: int = Field(description="Words shown on this slide.")
    is_continuation: bool = Field(description="True for every fragment of a split word but the first.")
    source_block: Optional[str] = Field(default=None, description="Prose block type of a plain slide.")
    block_type: Optional[str] = Field(default=None, description="Block type of a block slide.")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Block metadata.")

    @classmethod
    def from_slide(cls, slide: Slide) -> "SlideModel":
        return cls(**slide.to_dict())


class StatsModel(BaseModel):
    """Aggregate timing statistics."""

    total_duration: float = Field(description="Sum of slide durations (ms).")
    total_duration_with_pauses: float = Field(description="Durations plus all pauses (ms).")
    total_slides: int = Field(description="Number of slides.")
    min_duration: float = Field(description="Shortest slide duration (ms).")
    max_duration: float = Field(description="Longest slide duration (ms).")
    real_wpm: int = Field(description="Words per minute actually achieved, pauses excluded.")

    @classmethod
    def from_stats(cls, stats: SlideShowData) -> "StatsModel":
        return cls(**stats.to_dict())


class SlidesResponse(BaseModel):
    """Slides and statistics for a processed text."""

    slides: List[SlideModel] = Field(description="Slides in reading order.")
    stats: StatsModel = Field(description="Aggregate statistics.")


class ContentResponse(SlidesResponse):
    """Slides, statistics and block positions for processed content."""

    block_start_indices: List[int] = Field(description="Index of the first slide of each input block.")


class SessionResponse(BaseModel):
    """State of an open reading session."""

    id: str = Field(description="Session identifier.")
    chunked: bool = Field(description="True when the document is processed lazily.")
    completion: str = Field(description="not_started, in_progress or complete.")
    progress: float = Field(description="Percentage of the document processed.")
    total_estimated_slides: int = Field(description="Exact once complete, otherwise an estimate.")
    processed_slides: int = Field(description="Slides available right now.")
    wpm: float = Field(description="Current words per minute.")
    font: str = Field(description="Current font.")
    font_size: float = Field(description="Current font size.")


class SessionSlidesResponse(BaseModel):
    """A range of slides from a session."""

    session_id: str = Field(description="Session identifier.")
    start: int = Field(description="Index of the first returned slide.")
    slides: List[SlideModel] = Field(description="Returned slides; shorter than requested at the end.")
    total_estimated_slides: int = Field(description="Exact once complete, otherwise an estimate.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
    sessions: int = Field(description="Open reading sessions.")
