"""Spotify Web API helpers — all calls strictly sequential.

Functions:
- fetch_all_pages      → every ``items`` entry across a cursor-paged list
- get_my_playlists     → list of PlaylistSummary
- get_playlist         → PlaylistSummary of one playlist
- get_playlist_items   → raw playlist items (``{"track": {...}}``)
- get_audio_features   → feature records for ≤100 track IDs
- get_current_user_id  → id of the token holder
- create_playlist      → {id, url}
- add_tracks           → append one batch of ≤100 URIs

No retries: any non-2xx response raises ``ApiError`` and aborts the call.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from app.config import get_settings
from core.errors import ApiError, PaginationLoopError, ValidationError
from core.models import PlaylistSummary

logger = logging.getLogger(__name__)

PLAYLISTS_PAGE_SIZE = 50
TRACKS_PAGE_SIZE = 100
MAX_IDS_PER_REQUEST = 100


# ---------------------------------------------------------------------------
# Low-level request helpers
# ---------------------------------------------------------------------------

def _api_url(path: str) -> str:
    return f"{get_settings().spotify_api_base.rstrip('/')}{path}"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=get_settings().http_timeout)


async def _request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    token: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send one authenticated request; raise ``ApiError`` unless 2xx."""
    headers = {"Authorization": f"Bearer {token}"}
    try:
        resp = await client.request(method, url, headers=headers, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("%s %s failed: %s", method, url, exc)
        raise ApiError(None, str(exc) or type(exc).__name__, url) from exc

    if not resp.is_success:
        logger.warning("Spotify API %d on %s %s", resp.status_code, method, url)
        raise ApiError(resp.status_code, resp.reason_phrase, url)
    return resp


def _json(resp: httpx.Response) -> Any:
    """Decoded body of a 2xx response; ``ApiError`` if it is not JSON."""
    try:
        return resp.json()
    except ValueError as exc:
        url = str(resp.request.url)
        logger.warning("Non-JSON body from %s", url)
        raise ApiError(resp.status_code, "invalid JSON body", url) from exc


def _next_cursor(page: dict) -> str | None:
    """The page's ``next`` URL; missing, ``null`` and ``""`` all mean last page."""
    return page.get("next") or None


# ---------------------------------------------------------------------------
# Paginated fetch
# ---------------------------------------------------------------------------

async def fetch_all_pages(initial_url: str, token: str) -> list[dict]:
    """Follow ``next`` cursors from *initial_url* and collect every item.

    Raises ``ApiError`` on the first non-2xx page (items gathered so far
    are dropped) and ``PaginationLoopError`` if a cursor repeats.
    """
    items: list[dict] = []
    visited: set[str] = set()
    url: str | None = initial_url
    pages = 0

    async with _client() as client:
        while url is not None:
            if url in visited:
                logger.warning("Pagination loop detected at %s", url)
                raise PaginationLoopError(url)
            visited.add(url)

            resp = await _request(client, "GET", url, token)
            data = _json(resp)
            items.extend(data.get("items") or [])
            pages += 1
            url = _next_cursor(data)

    logger.debug("Fetched %d items over %d pages from %s", len(items), pages, initial_url)
    return items


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

def _playlist_summary(item: dict) -> PlaylistSummary:
    images = item.get("images") or []
    return PlaylistSummary(
        id=item["id"],
        name=item.get("name") or "(untitled)",
        track_count=(item.get("tracks") or {}).get("total", 0),
        image_url=images[0].get("url") if images else None,
        owner=(item.get("owner") or {}).get("display_name") or "",
    )


async def get_my_playlists(token: str) -> list[PlaylistSummary]:
    """Return all playlists owned/followed by the current user."""
    items = await fetch_all_pages(
        _api_url(f"/me/playlists?limit={PLAYLISTS_PAGE_SIZE}"), token
    )
    playlists = [_playlist_summary(item) for item in items if item]
    logger.info("Loaded %d playlists", len(playlists))
    return playlists


async def get_playlist(token: str, playlist_id: str) -> PlaylistSummary:
    """Return basic metadata for a single playlist."""
    async with _client() as client:
        resp = await _request(
            client,
            "GET",
            _api_url(f"/playlists/{playlist_id}"),
            token,
            params={"fields": "id,name,images,owner(display_name),tracks(total)"},
        )
    return _playlist_summary(_json(resp))


async def get_playlist_items(token: str, playlist_id: str) -> list[dict]:
    """Every raw item of a playlist, in playlist order."""
    return await fetch_all_pages(
        _api_url(f"/playlists/{playlist_id}/tracks?limit={TRACKS_PAGE_SIZE}"), token
    )


# ---------------------------------------------------------------------------
# Audio features
# ---------------------------------------------------------------------------

async def get_audio_features(token: str, track_ids: Sequence[str]) -> list[dict | None]:
    """Feature records for up to 100 IDs; unknown IDs come back as ``None``."""
    if len(track_ids) > MAX_IDS_PER_REQUEST:
        raise ValidationError(
            f"At most {MAX_IDS_PER_REQUEST} IDs per lookup, got {len(track_ids)}"
        )
    if not track_ids:
        return []

    async with _client() as client:
        resp = await _request(
            client,
            "GET",
            _api_url("/audio-features"),
            token,
            params={"ids": ",".join(track_ids)},
        )
    return _json(resp).get("audio_features") or []


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

async def get_current_user_id(token: str) -> str:
    """Return the Spotify user id for the token holder."""
    async with _client() as client:
        resp = await _request(client, "GET", _api_url("/me"), token)
    return _json(resp)["id"]


# ---------------------------------------------------------------------------
# Create playlist / add tracks
# ---------------------------------------------------------------------------

async def create_playlist(
    token: str,
    user_id: str,
    name: str,
    *,
    public: bool = False,
    description: str = "",
) -> dict:
    """Create a new Spotify playlist.

    Returns ``{"id": str, "url": str}``.
    """
    body = {
        "name": name,
        "description": description,
        "public": public,
    }
    async with _client() as client:
        resp = await _request(
            client, "POST", _api_url(f"/users/{user_id}/playlists"), token, json=body
        )
    data = _json(resp)
    return {
        "id": data["id"],
        "url": (data.get("external_urls") or {}).get("spotify", ""),
    }


async def add_tracks(token: str, playlist_id: str, uris: Sequence[str]) -> None:
    """Append one batch of ≤100 URIs to the end of *playlist_id*."""
    if len(uris) > MAX_IDS_PER_REQUEST:
        raise ValidationError(
            f"At most {MAX_IDS_PER_REQUEST} URIs per append, got {len(uris)}"
        )
    async with _client() as client:
        await _request(
            client,
            "POST",
            _api_url(f"/playlists/{playlist_id}/tracks"),
            token,
            json={"uris": list(uris)},
        )
