"""Tests for publishing a working order (app/publisher.py)."""

from __future__ import annotations

import json

import pytest

from app.publisher import playlist_name, publish
from core.errors import ApiError, PartialPublishError, ValidationError

CREATED = (201, {"id": "new-pl", "external_urls": {"spotify": "https://open.spotify.com/playlist/new-pl"}})


def _uris(n):
    return [f"spotify:track:{i}" for i in range(n)]


@pytest.mark.asyncio
async def test_publish_250_tracks_in_three_sequential_batches(spotify):
    spotify.add("POST", "/v1/users/me/playlists", CREATED)
    spotify.add("POST", "/v1/playlists/new-pl/tracks", (201, {}), (201, {}), (201, {}))
    uris = _uris(250)

    playlist_id = await publish("me", "Spin Class", uris, "tok")

    assert playlist_id == "new-pl"
    appends = spotify.calls_to("POST", "/v1/playlists/new-pl/tracks")
    batches = [json.loads(r.content)["uris"] for r in appends]
    assert [len(b) for b in batches] == [100, 100, 50]
    assert [u for b in batches for u in b] == uris
    # Playlist is created before the first append.
    assert spotify.calls[0].url.path == "/v1/users/me/playlists"


@pytest.mark.asyncio
async def test_publish_creates_private_named_playlist(spotify):
    spotify.add("POST", "/v1/users/me/playlists", CREATED)
    spotify.add("POST", "/v1/playlists/new-pl/tracks", (201, {}))

    await publish("me", "Spin Class", _uris(3), "tok")

    body = json.loads(spotify.calls[0].content)
    assert body["name"] == playlist_name("Spin Class") == "🚴 Spin Class (Pyramid Sorted)"
    assert body["public"] is False
    assert body["description"]


@pytest.mark.asyncio
async def test_publish_partial_failure_is_reported(spotify):
    spotify.add("POST", "/v1/users/me/playlists", CREATED)
    spotify.add(
        "POST",
        "/v1/playlists/new-pl/tracks",
        (201, {}),
        (502, {"error": {"status": 502}}),
    )

    with pytest.raises(PartialPublishError) as exc_info:
        await publish("me", "Spin Class", _uris(250), "tok")

    err = exc_info.value
    assert err.playlist_id == "new-pl"
    assert (err.appended_batches, err.total_batches) == (1, 3)
    assert isinstance(err.__cause__, ApiError)
    assert "1 of 3" in str(err)
    # Nothing is sent after the failed batch.
    assert len(spotify.calls_to("POST", "/v1/playlists/new-pl/tracks")) == 2


@pytest.mark.asyncio
async def test_publish_creation_failure(spotify):
    spotify.add("POST", "/v1/users/me/playlists", (403, {"error": {"status": 403}}))

    with pytest.raises(ApiError) as exc_info:
        await publish("me", "Spin Class", _uris(5), "tok")
    assert exc_info.value.status == 403
    assert len(spotify.calls) == 1


@pytest.mark.asyncio
async def test_publish_nothing(spotify):
    with pytest.raises(ValidationError):
        await publish("me", "Spin Class", [], "tok")
    assert spotify.calls == []
