"""Write a working order back to Spotify as a new playlist."""

from __future__ import annotations

import logging
from typing import Sequence

from app.spotify import MAX_IDS_PER_REQUEST, add_tracks, create_playlist
from core.errors import ApiError, PartialPublishError, ValidationError

logger = logging.getLogger(__name__)

_DESCRIPTION = (
    "Energy pyramid for indoor cycling: warm-up, peak, cool-down. "
    "Generated by Playlist Energy Sorter."
)


def playlist_name(source_name: str) -> str:
    return f"🚴 {source_name} (Pyramid Sorted)"


async def publish(
    owner_id: str,
    source_name: str,
    track_uris: Sequence[str],
    token: str,
    *,
    batch_size: int = MAX_IDS_PER_REQUEST,
) -> str:
    """Create a private playlist for *owner_id* and fill it with *track_uris*.

    Batches are appended one after another so Spotify keeps the order.
    If an append fails the new playlist stays on Spotify with the batches
    added so far and ``PartialPublishError`` is raised.

    Returns the new playlist's ID.
    """
    if not track_uris:
        raise ValidationError("No tracks to publish")

    created = await create_playlist(
        token,
        owner_id,
        playlist_name(source_name),
        public=False,
        description=_DESCRIPTION,
    )
    playlist_id = created["id"]

    batches = [
        track_uris[start : start + batch_size]
        for start in range(0, len(track_uris), batch_size)
    ]
    for done, batch in enumerate(batches):
        try:
            await add_tracks(token, playlist_id, batch)
        except ApiError as exc:
            logger.warning(
                "Publish of %s stopped after %d/%d batches: %s",
                playlist_id,
                done,
                len(batches),
                exc,
            )
            raise PartialPublishError(playlist_id, done, len(batches)) from exc

    logger.info(
        "Published playlist %s with %d tracks in %d batches",
        playlist_id,
        len(track_uris),
        len(batches),
    )
    return playlist_id
