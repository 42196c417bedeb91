"""In-memory store of reading sessions with idle-TTL cleanup.

WHY: The HTTP API hands out session IDs so a client can load a large
document once and then page through it, change speed, or jump ahead.
Sessions hold their slides in memory; an in-memory store is enough for
a single-process reader service with no persistence requirements.

HOW: SessionStore keeps ReadingSessions in a dict keyed by ID. All
mutations acquire a threading.Lock. cleanup_expired() drops sessions
idle longer than the TTL, and advance_incomplete() gives each open,
incomplete session one cooperative completion step.

RULES:
- All public methods that touch the dict acquire self._lock
- add() raises SessionLimitError when max_sessions is reached
- get() returns None for unknown IDs (no exceptions) and refreshes the
  session's idle timer
- delete() and expiry close the session so it is never advanced again
- Chunk processing runs outside the lock
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional

from rsvp_engine.config import MAX_SESSIONS, SESSION_TTL_SECONDS
from rsvp_engine.session import ReadingSession

logger = logging.getLogger(__name__)


class SessionLimitError(ValueError):
    """Raised when the store already holds max_sessions sessions."""


class SessionStore:
    """Thread-safe in-memory store for reading sessions."""

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        max_sessions: int = MAX_SESSIONS,
    ) -> None:
        self._sessions: Dict[str, ReadingSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add(self, session: ReadingSession) -> ReadingSession:
        """Register an already loaded session.

        Raises:
            SessionLimitError: If the store is full.
        """
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitError(
                    "Maximum number of open sessions ({}) reached".format(self.max_sessions)
                )
            self._sessions[session.id] = session

        logger.info("Created session %s", session.id)
        return session

    def get(self, session_id: str) -> Optional[ReadingSession]:
        """Look up a session by ID and refresh its idle timer."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def list_sessions(self) -> List[ReadingSession]:
        """Snapshot of all sessions, oldest first."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def delete(self, session_id: str) -> bool:
        """Close and remove a session; False when it does not exist."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Deleted session %s", session_id)
        return True

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def cleanup_expired(self) -> int:
        """Remove sessions idle for longer than the TTL.

        Returns:
            The number of removed sessions.
        """
        now = time.time()
        expired: List[ReadingSession] = []

        with self._lock:
            for session_id, session in list(self._sessions.items()):
                if now - session.last_access > self._ttl_seconds:
                    expired.append(self._sessions.pop(session_id))

        for session in expired:
            session.close()
            logger.info(
                "Expired session %s (idle %.0fs)", session.id, now - session.last_access
            )
        return len(expired)

    def advance_incomplete(self, max_chunks: int = 1) -> int:
        """Give every open, incomplete session one completion step.

        Returns:
            The number of sessions that still have work afterwards.
        """
        pending = 0
        for session in self.list_sessions():
            if session.closed:
                continue
            if session.advance(max_chunks):
                pending += 1
        return pending
