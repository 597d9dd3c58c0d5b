"""Tests for Spotify API helpers (app/spotify.py).

All HTTP calls are served by the ``spotify`` MockSpotify transport.
"""

from __future__ import annotations

import json

import httpx
import pytest

from app.spotify import (
    add_tracks,
    create_playlist,
    fetch_all_pages,
    get_audio_features,
    get_current_user_id,
    get_my_playlists,
    get_playlist,
)
from core.errors import ApiError, PaginationLoopError, ValidationError

API = "https://api.spotify.com/v1"
THINGS = f"{API}/things"


def _page(ids, next_url=None, *, omit_next=False):
    page = {"items": [{"id": i} for i in ids]}
    if not omit_next:
        page["next"] = next_url
    return page


# ---------------------------------------------------------------------------
# fetch_all_pages
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_all_pages_three_pages(spotify):
    spotify.add(
        "GET",
        "/v1/things",
        _page(["a", "b"], f"{THINGS}?offset=2"),
        _page(["c", "d"], f"{THINGS}?offset=4"),
        _page(["e"], None),
    )

    items = await fetch_all_pages(f"{THINGS}?limit=2", "tok")
    assert [i["id"] for i in items] == ["a", "b", "c", "d", "e"]
    assert len(spotify.calls) == 3
    assert spotify.calls[1].url.params["offset"] == "2"


@pytest.mark.asyncio
@pytest.mark.parametrize("last_page", [
    _page(["z"], None),
    _page(["z"], omit_next=True),
    _page(["z"], ""),
])
async def test_missing_null_and_empty_next_all_terminate(spotify, last_page):
    spotify.add("GET", "/v1/things", _page(["y"], f"{THINGS}?offset=1"), last_page)

    items = await fetch_all_pages(THINGS, "tok")
    assert [i["id"] for i in items] == ["y", "z"]


@pytest.mark.asyncio
async def test_fetch_all_pages_empty_items(spotify):
    spotify.add("GET", "/v1/things", {"items": [], "next": None})
    assert await fetch_all_pages(THINGS, "tok") == []


@pytest.mark.asyncio
async def test_error_on_second_page_discards_everything(spotify):
    spotify.add(
        "GET",
        "/v1/things",
        _page(["a", "b"], f"{THINGS}?offset=2"),
        (500, {"error": {"status": 500, "message": "boom"}}),
    )

    with pytest.raises(ApiError) as exc_info:
        await fetch_all_pages(THINGS, "tok")
    assert exc_info.value.status == 500
    assert exc_info.value.status_text == "Internal Server Error"


@pytest.mark.asyncio
async def test_repeated_next_fails_fast(spotify):
    looping = f"{THINGS}?offset=2"
    spotify.add("GET", "/v1/things", _page(["a"], looping), _page(["b"], looping))

    with pytest.raises(PaginationLoopError):
        await fetch_all_pages(THINGS, "tok")
    assert len(spotify.calls) == 2


@pytest.mark.asyncio
async def test_bearer_header_on_every_page(spotify):
    spotify.add("GET", "/v1/things", _page(["a"], f"{THINGS}?offset=1"), _page(["b"]))

    await fetch_all_pages(THINGS, "secret-token")
    assert all(r.headers["Authorization"] == "Bearer secret-token" for r in spotify.calls)


@pytest.mark.asyncio
async def test_transport_error_becomes_api_error(spotify):
    def _down(request):
        raise httpx.ConnectError("connection refused", request=request)

    spotify.add("GET", "/v1/things", _down)

    with pytest.raises(ApiError) as exc_info:
        await fetch_all_pages(THINGS, "tok")
    assert exc_info.value.status is None


@pytest.mark.asyncio
async def test_non_json_page_becomes_api_error(spotify):
    spotify.add("GET", "/v1/things", (200, "<html>gateway hiccup</html>"))

    with pytest.raises(ApiError) as exc_info:
        await fetch_all_pages(THINGS, "tok")
    assert exc_info.value.status == 200
    assert exc_info.value.status_text == "invalid JSON body"


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_my_playlists(spotify):
    spotify.add(
        "GET",
        "/v1/me/playlists",
        {
            "items": [
                {"id": "p1", "name": "Rock", "tracks": {"total": 42},
                 "images": [{"url": "https://img/1"}], "owner": {"display_name": "me"}},
                {"id": "p2", "name": "Pop", "tracks": {"total": 10},
                 "images": None, "owner": {"display_name": "me"}},
            ],
            "next": None,
        },
    )

    result = await get_my_playlists("tok")
    assert [p.id for p in result] == ["p1", "p2"]
    assert result[0].track_count == 42
    assert result[0].image_url == "https://img/1"
    assert result[1].image_url is None
    assert spotify.calls[0].url.params["limit"] == "50"


@pytest.mark.asyncio
async def test_get_playlist(spotify):
    spotify.add(
        "GET",
        "/v1/playlists/pl-1",
        {"id": "pl-1", "name": "My Mix", "tracks": {"total": 55},
         "owner": {"display_name": "User"}},
    )

    result = await get_playlist("tok", "pl-1")
    assert result.name == "My Mix"
    assert result.track_count == 55


# ---------------------------------------------------------------------------
# Audio features
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_audio_features(spotify):
    spotify.add(
        "GET",
        "/v1/audio-features",
        {"audio_features": [{"id": "a", "energy": 0.5}, None]},
    )

    result = await get_audio_features("tok", ["a", "b"])
    assert result == [{"id": "a", "energy": 0.5}, None]
    assert spotify.calls[0].url.params["ids"] == "a,b"


@pytest.mark.asyncio
async def test_get_audio_features_rejects_oversized_batch(spotify):
    with pytest.raises(ValidationError):
        await get_audio_features("tok", [str(i) for i in range(101)])
    assert spotify.calls == []


# ---------------------------------------------------------------------------
# User / create / add
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_current_user_id(spotify):
    spotify.add("GET", "/v1/me", {"id": "spotify-user-42"})
    assert await get_current_user_id("tok") == "spotify-user-42"


@pytest.mark.asyncio
async def test_get_current_user_id_non_json(spotify):
    spotify.add("GET", "/v1/me", (200, b"not json"))

    with pytest.raises(ApiError, match="invalid JSON body"):
        await get_current_user_id("tok")


@pytest.mark.asyncio
async def test_create_playlist(spotify):
    spotify.add(
        "POST",
        "/v1/users/user1/playlists",
        (201, {"id": "new-pl", "external_urls": {"spotify": "https://open.spotify.com/playlist/new-pl"}}),
    )

    result = await create_playlist("tok", "user1", "Test", description="desc")
    assert result == {"id": "new-pl", "url": "https://open.spotify.com/playlist/new-pl"}
    assert json.loads(spotify.calls[0].content) == {"name": "Test", "description": "desc", "public": False}


@pytest.mark.asyncio
async def test_add_tracks(spotify):
    spotify.add("POST", "/v1/playlists/pl/tracks", (201, {"snapshot_id": "s1"}))

    await add_tracks("tok", "pl", ["spotify:track:a", "spotify:track:b"])
    assert json.loads(spotify.calls[0].content) == {"uris": ["spotify:track:a", "spotify:track:b"]}


@pytest.mark.asyncio
async def test_add_tracks_forbidden(spotify):
    spotify.add("POST", "/v1/playlists/pl/tracks", (403, {"error": {"status": 403}}))

    with pytest.raises(ApiError) as exc_info:
        await add_tracks("tok", "pl", ["spotify:track:a"])
    assert exc_info.value.status == 403
