"""FastAPI application exposing the slide engine and reading sessions.

WHY: Reader front ends (web, mobile, desktop) need timed slides without
embedding the engine. Small texts are converted in one request; large
documents are loaded into a session that clients page through while the
server completes the rest in the background. FastAPI provides request
validation and automatic OpenAPI documentation.

HOW: One FastAPI app with three endpoint groups:
  slides    — POST /slides and POST /content, stateless conversion
  sessions  — create, read ranges, stats, live settings, process-all,
              delete
  health    — GET /health
The lifespan starts two periodic tasks: TTL cleanup of idle sessions,
and a cooperative completion loop that advances every incomplete session
a few chunks at a time with short sleeps in between, so request
handling is never starved.

RULES:
- All endpoints document their error responses with ErrorResponse
- Bad settings values -> 400, schema-invalid blocks -> 422, unknown
  session or slide index -> 404, store full -> 429
- Handlers and the completion loop run on the event loop thread, so a
  session's processor is only ever touched by one caller at a time
- Deleted or expired sessions are never advanced again
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response

from rsvp_engine import __version__
from rsvp_engine.config import (
    CHUNKS_PER_STEP,
    CLEANUP_INTERVAL,
    COMPLETION_INTERVAL,
    default_settings,
    validate_settings,
)
from rsvp_engine.core.content import ContentValidationError, parse_blocks
from rsvp_engine.core.models import ReaderSettings
from rsvp_engine.core.pipeline import process_content, process_text
from rsvp_engine.server.models import (
    ContentRequest,
    ContentResponse,
    ErrorResponse,
    HealthResponse,
    SessionResponse,
    SessionSlidesResponse,
    SettingsModel,
    SettingsUpdate,
    SlideModel,
    SlidesResponse,
    StatsModel,
    TextRequest,
)
from rsvp_engine.server.sessions import SessionLimitError, SessionStore
from rsvp_engine.session import ReadingSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = SessionStore()

MAX_PAGE_SIZE = 1000


async def _periodic_cleanup() -> None:
    """Drop idle sessions every CLEANUP_INTERVAL seconds."""
    while True:
        await asyncio.sleep(CLEANUP_INTERVAL)
        session_store.cleanup_expired()


async def _background_completion() -> None:
    """Advance incomplete sessions a few chunks per step."""
    while True:
        await asyncio.sleep(COMPLETION_INTERVAL)
        try:
            session_store.advance_incomplete(CHUNKS_PER_STEP)
        except Exception:
            logger.exception("Background completion step failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic tasks on startup, cancel them on shutdown."""
    tasks = [
        asyncio.create_task(_periodic_cleanup()),
        asyncio.create_task(_background_completion()),
    ]
    yield
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    lifespan=lifespan,
    title="RSVP Engine API",
    description=(
        "Converts text and structured content into timed RSVP slides with "
        "fixation points and pixel offsets. Small texts are converted in one "
        "request; large documents are loaded into sessions that are paged "
        "through while the server finishes processing in the background."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_settings(model: Optional[SettingsModel]) -> ReaderSettings:
    """Build validated ReaderSettings from an optional request model."""
    try:
        settings = model.to_settings() if model is not None else default_settings()
        validate_settings(settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return settings


def _get_session_or_404(session_id: str) -> ReadingSession:
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return session


def _session_to_response(session: ReadingSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        chunked=session.is_chunked,
        completion=session.completion.value,
        progress=session.progress,
        total_estimated_slides=session.total_slides,
        processed_slides=session.processed_slides,
        wpm=session.settings.wpm,
        font=session.settings.font,
        font_size=session.settings.font_size,
    )


# ---------------------------------------------------------------------------
# Endpoints: Slides
# ---------------------------------------------------------------------------


@app.post(
    "/slides",
    response_model=SlidesResponse,
    tags=["slides"],
    summary="Convert text into timed slides",
    description="Tokenizes and times the whole text in one request.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid settings"},
    },
)
async def create_slides(request: TextRequest) -> SlidesResponse:
    settings = _resolve_settings(request.settings)
    slides, stats = process_text(request.text, settings)
    return SlidesResponse(
        slides=[SlideModel.from_slide(s) for s in slides],
        stats=StatsModel.from_stats(stats),
    )


@app.post(
    "/content",
    response_model=ContentResponse,
    tags=["slides"],
    summary="Convert structured content blocks into slides",
    description=(
        "Prose blocks (text, blockquote, list) become RSVP slides; code, "
        "table, heading and image blocks become single verbatim slides; "
        "hr blocks are skipped."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid settings"},
        422: {"model": ErrorResponse, "description": "Blocks do not match the content schema"},
    },
)
async def create_content_slides(request: ContentRequest) -> ContentResponse:
    settings = _resolve_settings(request.settings)
    try:
        blocks = parse_blocks(request.blocks)
    except ContentValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    slides, stats, block_start_indices = process_content(blocks, settings)
    return ContentResponse(
        slides=[SlideModel.from_slide(s) for s in slides],
        stats=StatsModel.from_stats(stats),
        block_start_indices=block_start_indices,
    )


# ---------------------------------------------------------------------------
# Endpoints: Sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["sessions"],
    summary="Load a document into a reading session",
    description=(
        "Large documents are processed lazily: the first chunk is ready "
        "immediately and the rest is completed in the background."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid settings"},
        429: {"model": ErrorResponse, "description": "Too many open sessions"},
    },
)
async def create_session(request: TextRequest) -> SessionResponse:
    settings = _resolve_settings(request.settings)
    if len(session_store) >= session_store.max_sessions:
        raise HTTPException(
            status_code=429,
            detail="Maximum number of open sessions ({}) reached".format(
                session_store.max_sessions
            ),
        )
    session = ReadingSession(request.text, settings)
    try:
        session_store.add(session)
    except SessionLimitError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _session_to_response(session)


@app.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get session state",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_session(session_id: str) -> SessionResponse:
    return _session_to_response(_get_session_or_404(session_id))


@app.get(
    "/sessions/{session_id}/slides",
    response_model=SessionSlidesResponse,
    tags=["sessions"],
    summary="Read a range of slides",
    description=(
        "Processes whatever part of the document the range needs. Fewer "
        "slides than requested are returned at the end of the document."
    ),
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_session_slides(
    session_id: str,
    start: Annotated[int, Query(ge=0, description="Index of the first slide.")] = 0,
    count: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Number of slides.")] = 100,
) -> SessionSlidesResponse:
    session = _get_session_or_404(session_id)
    slides = session.slides(start, count)
    return SessionSlidesResponse(
        session_id=session.id,
        start=start,
        slides=[SlideModel.from_slide(s) for s in slides],
        total_estimated_slides=session.total_slides,
    )


@app.get(
    "/sessions/{session_id}/slides/{index}",
    response_model=SlideModel,
    tags=["sessions"],
    summary="Read one slide",
    responses={404: {"model": ErrorResponse, "description": "Session or slide not found"}},
)
async def get_session_slide(session_id: str, index: int) -> SlideModel:
    session = _get_session_or_404(session_id)
    slide = session.slide(index) if index >= 0 else None
    if slide is None:
        raise HTTPException(
            status_code=404,
            detail="Slide {} is past the end of the document.".format(index),
        )
    return SlideModel.from_slide(slide)


@app.get(
    "/sessions/{session_id}/stats",
    response_model=StatsModel,
    tags=["sessions"],
    summary="Statistics over the slides processed so far",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_session_stats(session_id: str) -> StatsModel:
    session = _get_session_or_404(session_id)
    return StatsModel.from_stats(session.stats())


@app.post(
    "/sessions/{session_id}/process-all",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Finish processing the document now",
    description="Synchronously processes every remaining chunk, e.g. before seeking to the end.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def process_session(session_id: str) -> SessionResponse:
    session = _get_session_or_404(session_id)
    session.finish()
    return _session_to_response(session)


@app.patch(
    "/sessions/{session_id}/settings",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Change speed or font without reprocessing",
    description=(
        "A new WPM rescales every existing duration in place; a new font "
        "or size recomputes pixel offsets. Chunks processed later use the "
        "new values."
    ),
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def update_session_settings(session_id: str, update: SettingsUpdate) -> SessionResponse:
    session = _get_session_or_404(session_id)
    if update.wpm is not None:
        session.set_wpm(update.wpm)
    if update.font is not None or update.font_size is not None:
        session.set_font(
            update.font if update.font is not None else session.settings.font,
            update.font_size if update.font_size is not None else session.settings.font_size,
        )
    return _session_to_response(session)


@app.delete(
    "/sessions/{session_id}",
    status_code=204,
    tags=["sessions"],
    summary="Close a reading session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def delete_session(session_id: str) -> Response:
    if not session_store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, sessions=len(session_store))


def run_api():
    """Entry point for the rsvp-api console script."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
