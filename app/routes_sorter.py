"""Sorter workflow JSON API.

GET  /playlists                 list the user's playlists
POST /playlists/{id}/load       fetch tracks + audio features, new working order
GET  /order                     current working order + stats
POST /order/pyramid             pyramid-sort the working order
POST /order/reset               restore the fetched order
POST /order/move                move one track (manual reorder)
POST /order/publish             save the working order as a new playlist

A failed operation never replaces the stored working order, so the user
can retry without losing edits.
"""

from __future__ import annotations

import logging
import math

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from app.enricher import load_playlist_tracks
from app.publisher import publish
from app.session import UserSession, get_session
from app.spotify import (
    MAX_IDS_PER_REQUEST,
    get_current_user_id,
    get_my_playlists,
    get_playlist,
)
from core.ordering import WorkingOrder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sorter"])


class MoveRequest(BaseModel):
    from_index: int
    to_index: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_token(session: UserSession) -> str:
    """Return the session's access token or fail with 401."""
    if not session.auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Not logged in — please /login")
    return session.auth.access_token  # type: ignore[return-value]


def _require_order(session: UserSession) -> WorkingOrder:
    if session.order is None:
        raise HTTPException(status_code=409, detail="No playlist loaded")
    return session.order


def _order_view(session: UserSession) -> dict:
    order = _require_order(session)
    return {
        "playlist": session.playlist.model_dump() if session.playlist else None,
        "is_sorted": order.is_sorted,
        "stats": order.stats().model_dump(),
        "tracks": [t.model_dump() for t in order.tracks],
    }


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

@router.get("/playlists")
async def list_playlists(request: Request):
    """All playlists of the logged-in user."""
    session = get_session(request)
    token = _require_token(session)
    session.playlists = await get_my_playlists(token)
    return [p.model_dump() for p in session.playlists]


@router.post("/playlists/{playlist_id}/load")
async def load_playlist(request: Request, playlist_id: str):
    """Fetch tracks + audio features and start a new working order."""
    session = get_session(request)
    token = _require_token(session)

    session.load_generation += 1
    generation = session.load_generation

    summary = session.find_playlist(playlist_id) or await get_playlist(token, playlist_id)
    tracks = await load_playlist_tracks(token, playlist_id)

    # A newer load (or a logout) started while this one was in flight.
    if generation != session.load_generation:
        raise HTTPException(status_code=409, detail="Superseded by a newer load")

    session.playlist = summary
    session.order = WorkingOrder(tracks)
    logger.info("Loaded %d tracks from playlist %s", len(tracks), playlist_id)
    return _order_view(session)


# ---------------------------------------------------------------------------
# Working order
# ---------------------------------------------------------------------------

@router.get("/order")
async def get_order(request: Request):
    session = get_session(request)
    _require_token(session)
    return _order_view(session)


@router.post("/order/pyramid")
async def pyramid_order(request: Request):
    """Reorder the working list into a low → high → low energy curve."""
    session = get_session(request)
    _require_token(session)
    _require_order(session).apply_pyramid()
    return _order_view(session)


@router.post("/order/reset")
async def reset_order(request: Request):
    session = get_session(request)
    _require_token(session)
    _require_order(session).reset()
    return _order_view(session)


@router.post("/order/move")
async def move_in_order(request: Request, body: MoveRequest):
    """Manual reorder: move one track to a new position."""
    session = get_session(request)
    _require_token(session)
    _require_order(session).move(body.from_index, body.to_index)
    return _order_view(session)


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------

@router.post("/order/publish")
async def publish_order(request: Request):
    """Save the working order as a new private playlist."""
    session = get_session(request)
    token = _require_token(session)
    order = _require_order(session)
    uris = order.uris
    source_name = session.playlist.name if session.playlist else "Playlist"

    owner_id = await get_current_user_id(token)
    playlist_id = await publish(owner_id, source_name, uris, token)

    return {
        "playlist_id": playlist_id,
        "url": f"https://open.spotify.com/playlist/{playlist_id}",
        "track_count": len(uris),
        "batches": math.ceil(len(uris) / MAX_IDS_PER_REQUEST),
    }
