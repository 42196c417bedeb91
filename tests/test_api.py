"""Tests for the FastAPI slide and session API.

WHY: Validates every endpoint: happy paths, error mapping (400, 404,
422, 429) and the session lifecycle from creation to deletion.

HOW: Uses FastAPI TestClient for synchronous in-process testing. The
client is created without entering its context manager, so the lifespan
background loops never run; completion is driven explicitly through the
store or the process-all endpoint.

RULES:
- All tests use the FastAPI TestClient (synchronous)
- The session store is cleared before and after each test
- Large-document tests patch ReadingSession to a low chunking threshold
"""

from __future__ import annotations

import functools

import pytest
from fastapi.testclient import TestClient

from rsvp_engine import __version__
from rsvp_engine.server import app as app_module
from rsvp_engine.server.app import app, session_store
from rsvp_engine.session import ReadingSession


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_session_store():
    """Clear all sessions before each test to ensure isolation."""
    session_store.clear()
    yield
    session_store.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def chunked_sessions(monkeypatch):
    """Make every new session use the chunked processor."""
    monkeypatch.setattr(
        app_module,
        "ReadingSession",
        functools.partial(ReadingSession, large_text_threshold=100, chunk_chars=300),
    )


def _create_session(client, text="One two three.", **settings):
    body = {"text": text}
    if settings:
        body["settings"] = settings
    resp = client.post("/sessions", json=body)
    assert resp.status_code == 201
    return resp.json()


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__, "sessions": 0}


# ---------------------------------------------------------------------------
# POST /slides
# ---------------------------------------------------------------------------


class TestCreateSlides:
    """Stateless text conversion."""

    def test_converts_text(self, client):
        resp = client.post("/slides", json={"text": "Hello, world."})
        assert resp.status_code == 200
        body = resp.json()
        assert [s["text"] for s in body["slides"]] == ["Hello,", "world."]
        assert body["slides"][0]["post_delay"] == 250
        assert body["slides"][-1]["post_delay"] == 0
        assert body["slides"][0]["kind"] == "plain"
        assert body["stats"]["total_slides"] == 2

    def test_settings_override(self, client):
        resp = client.post("/slides", json={
            "text": "one two three four",
            "settings": {"wpm": 600, "words_per_slide": 2},
        })
        body = resp.json()
        assert [s["text"] for s in body["slides"]] == ["one two", "three four"]
        assert body["slides"][0]["duration"] == pytest.approx(200.0)

    def test_algorithm_alias(self, client):
        resp = client.post("/slides", json={
            "text": "the zyzzyva",
            "settings": {"algorithm": "wordFrequency"},
        })
        assert resp.status_code == 200
        slides = resp.json()["slides"]
        assert slides[0]["duration"] < slides[1]["duration"]

    def test_word_frequency_bounds(self, client):
        resp = client.post("/slides", json={
            "text": "the zyzzyva",
            "settings": {
                "algorithm": "word_frequency",
                "word_freq_high_duration": 120,
                "word_freq_low_duration": 120,
            },
        })
        assert resp.status_code == 200
        assert [s["duration"] for s in resp.json()["slides"]] == [120.0, 120.0]

    def test_negative_word_frequency_bound_is_422(self, client):
        resp = client.post("/slides", json={
            "text": "x",
            "settings": {"word_freq_low_duration": -1},
        })
        assert resp.status_code == 422

    def test_unknown_algorithm_is_400(self, client):
        resp = client.post("/slides", json={"text": "x", "settings": {"algorithm": "magic"}})
        assert resp.status_code == 400
        assert "Unknown timing algorithm" in resp.json()["detail"]

    def test_out_of_range_wpm_is_422(self, client):
        resp = client.post("/slides", json={"text": "x", "settings": {"wpm": 10}})
        assert resp.status_code == 422

    def test_empty_text(self, client):
        resp = client.post("/slides", json={"text": ""})
        assert resp.status_code == 200
        assert resp.json()["slides"] == []


# ---------------------------------------------------------------------------
# POST /content
# ---------------------------------------------------------------------------


class TestCreateContentSlides:
    """Structured block conversion."""

    def test_converts_blocks(self, client):
        resp = client.post("/content", json={"blocks": [
            {"type": "heading", "content": "Title", "metadata": {"level": 2}},
            {"type": "hr", "content": ""},
            {"type": "text", "content": "Body text."},
        ]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["block_start_indices"] == [0, 1, 1]
        assert body["slides"][0]["kind"] == "block"
        assert body["slides"][0]["block_type"] == "heading"
        assert body["slides"][0]["metadata"] == {"level": 2}
        assert body["slides"][1]["source_block"] == "text"

    def test_invalid_block_is_422(self, client):
        resp = client.post("/content", json={"blocks": [{"type": "video", "content": "x"}]})
        assert resp.status_code == 422
        assert "Invalid content block" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestSessions:
    """Session lifecycle."""

    def test_create_small_session(self, client):
        body = _create_session(client)
        assert body["chunked"] is False
        assert body["completion"] == "complete"
        assert body["total_estimated_slides"] == 3
        assert body["wpm"] == 300

    def test_get_session(self, client):
        created = _create_session(client)
        resp = client.get("/sessions/{}".format(created["id"]))
        assert resp.status_code == 200
        assert resp.json()["id"] == created["id"]

    def test_unknown_session_is_404(self, client):
        assert client.get("/sessions/nope").status_code == 404
        assert client.get("/sessions/nope/slides").status_code == 404
        assert client.get("/sessions/nope/stats").status_code == 404
        assert client.delete("/sessions/nope").status_code == 404

    def test_read_range(self, client):
        created = _create_session(client)
        resp = client.get("/sessions/{}/slides".format(created["id"]), params={"start": 1, "count": 5})
        body = resp.json()
        assert body["start"] == 1
        assert [s["text"] for s in body["slides"]] == ["two", "three."]

    def test_read_one_slide(self, client):
        created = _create_session(client)
        resp = client.get("/sessions/{}/slides/0".format(created["id"]))
        assert resp.status_code == 200
        assert resp.json()["text"] == "One"

    def test_slide_past_end_is_404(self, client):
        created = _create_session(client)
        resp = client.get("/sessions/{}/slides/3".format(created["id"]))
        assert resp.status_code == 404
        assert client.get("/sessions/{}/slides/-1".format(created["id"])).status_code == 404

    def test_stats(self, client):
        created = _create_session(client)
        resp = client.get("/sessions/{}/stats".format(created["id"]))
        assert resp.json()["total_slides"] == 3
        assert resp.json()["real_wpm"] == 300

    def test_update_wpm(self, client):
        created = _create_session(client)
        resp = client.patch("/sessions/{}/settings".format(created["id"]), json={"wpm": 600})
        assert resp.status_code == 200
        assert resp.json()["wpm"] == 600
        slide = client.get("/sessions/{}/slides/0".format(created["id"])).json()
        assert slide["duration"] == pytest.approx(100.0)
        assert slide["wpm"] == 600

    def test_update_font(self, client):
        created = _create_session(client, text="hello")
        resp = client.patch(
            "/sessions/{}/settings".format(created["id"]), json={"font_size": 100}
        )
        assert resp.json()["font_size"] == 100
        slide = client.get("/sessions/{}/slides/0".format(created["id"])).json()
        assert slide["pixel_offset"] == pytest.approx(2.5 * 100 * 0.6)

    def test_delete(self, client):
        created = _create_session(client)
        resp = client.delete("/sessions/{}".format(created["id"]))
        assert resp.status_code == 204
        assert client.get("/sessions/{}".format(created["id"])).status_code == 404

    def test_store_full_is_429(self, client, monkeypatch):
        monkeypatch.setattr(session_store, "max_sessions", 1)
        _create_session(client)
        resp = client.post("/sessions", json={"text": "more"})
        assert resp.status_code == 429

    def test_invalid_settings_is_400(self, client):
        resp = client.post("/sessions", json={"text": "x", "settings": {"algorithm": "nope"}})
        assert resp.status_code == 400


class TestChunkedSessions:
    """Large documents load lazily and complete on request."""

    def test_create_is_lazy(self, client, chunked_sessions, long_text):
        body = _create_session(client, text=long_text)
        assert body["chunked"] is True
        assert body["completion"] == "not_started"
        assert body["processed_slides"] < body["total_estimated_slides"]

    def test_process_all(self, client, chunked_sessions, long_text):
        created = _create_session(client, text=long_text)
        resp = client.post("/sessions/{}/process-all".format(created["id"]))
        body = resp.json()
        assert body["completion"] == "complete"
        assert body["progress"] == 100.0
        assert body["processed_slides"] == body["total_estimated_slides"] == 1600

    def test_far_read(self, client, chunked_sessions, long_text):
        created = _create_session(client, text=long_text)
        resp = client.get(
            "/sessions/{}/slides".format(created["id"]), params={"start": 1000, "count": 4}
        )
        slides = resp.json()["slides"]
        assert len(slides) == 4
        assert slides[0]["slide_number"] == 1001

    def test_background_step(self, client, chunked_sessions, long_text):
        created = _create_session(client, text=long_text)
        session_store.advance_incomplete(max_chunks=3)
        body = client.get("/sessions/{}".format(created["id"])).json()
        assert body["completion"] == "in_progress"
