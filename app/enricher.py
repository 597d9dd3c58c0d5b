"""Join playlist tracks with their audio features.

Playlist items are parsed into ``TrackRef``s, local / ID-less entries and
duplicates are dropped, and audio features are looked up in batches of
100 IDs, one request per batch, sequentially.  The merge is by track ID,
so output order is always the playlist order.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from app.spotify import MAX_IDS_PER_REQUEST, get_audio_features, get_playlist_items
from core.models import Track, TrackRef

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def track_ref_from_item(item: dict) -> TrackRef | None:
    """Build a ``TrackRef`` from a playlist item; ``None`` for empty slots."""
    track = (item or {}).get("track")
    if not track:
        return None

    images = (track.get("album") or {}).get("images") or []
    if len(images) > 2:
        album_art = images[2].get("url")
    elif images:
        album_art = images[0].get("url")
    else:
        album_art = None

    return TrackRef(
        id=track.get("id"),
        uri=track.get("uri"),
        name=track.get("name") or "",
        artist=", ".join(a.get("name", "") for a in track.get("artists") or []),
        album_art_url=album_art,
        duration_ms=track.get("duration_ms") or 0,
        is_local=bool(track.get("is_local", False)),
    )


def addressable_refs(refs: Iterable[TrackRef | None]) -> list[TrackRef]:
    """Keep refs that have a platform ID and are not local; first ID wins."""
    seen: set[str] = set()
    result: list[TrackRef] = []
    for ref in refs:
        if ref is None or not ref.is_addressable:
            continue
        if ref.id in seen:
            continue
        seen.add(ref.id)  # type: ignore[arg-type]
        result.append(ref)
    return result


def _merge(ref: TrackRef, feature: dict | None) -> Track:
    feature = feature or {}
    tempo = feature.get("tempo")
    return Track(
        id=ref.id,
        uri=ref.uri,
        name=ref.name,
        artist=ref.artist,
        album_art_url=ref.album_art_url,
        energy=feature.get("energy"),
        bpm=round(tempo) if tempo else None,
        danceability=feature.get("danceability"),
        valence=feature.get("valence"),
        duration_ms=ref.duration_ms,
    )


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------

async def enrich(
    track_refs: Sequence[TrackRef | None],
    token: str,
    *,
    batch_size: int = MAX_IDS_PER_REQUEST,
) -> list[Track]:
    """Attach energy / tempo / danceability / valence to each track.

    IDs without a feature record keep ``None`` in every feature field.
    """
    refs = addressable_refs(track_refs)
    ids = [ref.id for ref in refs]
    features: dict[str, dict] = {}

    for start in range(0, len(ids), batch_size):
        batch = ids[start : start + batch_size]
        for record in await get_audio_features(token, batch):  # type: ignore[arg-type]
            if record and record.get("id"):
                features[record["id"]] = record

    logger.info(
        "Enriched %d tracks (%d with features, %d dropped)",
        len(refs),
        sum(1 for i in ids if i in features),
        len(track_refs) - len(refs),
    )
    return [_merge(ref, features.get(ref.id)) for ref in refs]  # type: ignore[arg-type]


async def load_playlist_tracks(token: str, playlist_id: str) -> list[Track]:
    """Fetch every track of *playlist_id* and enrich it."""
    items = await get_playlist_items(token, playlist_id)
    return await enrich([track_ref_from_item(item) for item in items], token)
