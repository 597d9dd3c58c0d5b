"""In-memory per-browser session state.

The signed session cookie only carries a random ``sid``; the access token,
pending login and working order live here, in process memory, and are
gone when the process exits.  Idle sessions are dropped after
``SESSION_TTL_SECONDS`` and the registry holds at most ``MAX_SESSIONS``.
"""

from __future__ import annotations

import logging
import secrets
import time

from fastapi import Request

from app.auth import AuthFlowController
from app.config import get_settings
from core.models import PlaylistSummary
from core.ordering import WorkingOrder

logger = logging.getLogger(__name__)

_SESSION_KEY = "sid"


class UserSession:
    """Runtime state for one browser session."""

    __slots__ = (
        "session_id",
        "auth",
        "playlists",
        "playlist",
        "order",
        "load_generation",
        "last_seen",
    )

    def __init__(self, session_id: str, auth: AuthFlowController):
        self.session_id = session_id
        self.auth = auth
        self.playlists: list[PlaylistSummary] = []
        self.playlist: PlaylistSummary | None = None
        self.order: WorkingOrder | None = None
        self.load_generation = 0
        self.last_seen = time.monotonic()

    def find_playlist(self, playlist_id: str) -> PlaylistSummary | None:
        return next((p for p in self.playlists if p.id == playlist_id), None)

    def clear_library(self) -> None:
        self.playlists = []
        self.playlist = None
        self.order = None
        self.load_generation += 1


_sessions: dict[str, UserSession] = {}


# ---------------------------------------------------------------------------
# Eviction
# ---------------------------------------------------------------------------

def _discard(sid: str) -> None:
    session = _sessions.pop(sid, None)
    if session is not None:
        session.auth.logout()
        # Any load still in flight for this session is stale now.
        session.clear_library()


def _evict_idle(now: float, ttl: float) -> None:
    expired = [sid for sid, s in _sessions.items() if now - s.last_seen > ttl]
    for sid in expired:
        _discard(sid)
    if expired:
        logger.info("Dropped %d idle sessions", len(expired))


def _make_room(limit: int) -> None:
    """Drop least recently used sessions until one more fits under *limit*."""
    while _sessions and len(_sessions) >= max(limit, 1):
        oldest = min(_sessions.values(), key=lambda s: s.last_seen)
        logger.info("Session limit %d reached, dropping oldest session", limit)
        _discard(oldest.session_id)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def get_session(request: Request) -> UserSession:
    """Return the caller's session, creating one if the cookie has none."""
    settings = get_settings()
    now = time.monotonic()
    _evict_idle(now, settings.session_ttl_seconds)

    sid = request.session.get(_SESSION_KEY)
    session = _sessions.get(sid) if sid else None
    if session is None:
        _make_room(settings.max_sessions)
        sid = secrets.token_urlsafe(32)
        request.session[_SESSION_KEY] = sid
        session = UserSession(sid, AuthFlowController.from_settings())
        _sessions[sid] = session

    session.last_seen = now
    return session


def drop_session(request: Request) -> None:
    sid = request.session.pop(_SESSION_KEY, None)
    if sid:
        _sessions.pop(sid, None)


def clear_sessions() -> None:
    _sessions.clear()
