"""Pydantic models shared across the application."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class PkcePair(BaseModel):
    """PKCE verifier and its S256 challenge."""

    verifier: str = Field(min_length=43, max_length=128)
    challenge: str


class PlaylistSummary(BaseModel):
    """One entry of the user's playlist list."""

    id: str
    name: str = "(untitled)"
    track_count: int = 0
    image_url: Optional[str] = None
    owner: str = ""

    model_config = {"frozen": True}


class TrackRef(BaseModel):
    """Base track reference parsed from a playlist item, before enrichment."""

    id: Optional[str] = None
    uri: Optional[str] = None  # e.g. "spotify:track:6rqhFgbbKwnb9MLmUQDhG6"
    name: str = ""
    artist: str = ""
    album_art_url: Optional[str] = None
    duration_ms: int = 0
    is_local: bool = False

    @property
    def is_addressable(self) -> bool:
        """True if the track has a stable platform ID and can be re-added."""
        return bool(self.id) and bool(self.uri) and not self.is_local


class Track(BaseModel):
    """A playlist track with its audio features (``None`` when unknown)."""

    id: str
    uri: str
    name: str = ""
    artist: str = ""
    album_art_url: Optional[str] = None
    energy: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    bpm: Optional[int] = None
    danceability: Optional[float] = None
    valence: Optional[float] = None
    duration_ms: int = 0

    model_config = {"frozen": True}


class OrderStats(BaseModel):
    """Summary figures for an ordered track list."""

    track_count: int = 0
    avg_energy: float = 0.0
    avg_bpm: Optional[int] = None
    total_minutes: int = 0
    max_energy: float = 0.0
