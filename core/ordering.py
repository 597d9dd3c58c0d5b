"""Original vs. working track order, plus summary stats."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from core.models import OrderStats, Track
from core.pyramid import energy_key, move_track, pyramid_sort


def order_stats(tracks: Sequence[Track]) -> OrderStats:
    """Average energy, average BPM, total minutes and peak energy."""
    if not tracks:
        return OrderStats()

    energies = [energy_key(t) for t in tracks]
    bpms = [t.bpm for t in tracks if t.bpm]
    total_ms = sum(t.duration_ms for t in tracks)

    return OrderStats(
        track_count=len(tracks),
        avg_energy=round(sum(energies) / len(energies), 2),
        avg_bpm=round(sum(bpms) / len(bpms)) if bpms else None,
        total_minutes=round(total_ms / 60_000),
        max_energy=max(energies),
    )


class WorkingOrder:
    """The fetched order of a playlist and the order being edited.

    ``original`` is never touched, so ``reset()`` can always restore it.
    Every operation swaps in a new working list that is a permutation of
    the original.
    """

    def __init__(self, tracks: Sequence[Track]):
        self.original: Tuple[Track, ...] = tuple(tracks)
        self.tracks: List[Track] = list(self.original)
        self.is_sorted = False

    def apply_pyramid(self) -> List[Track]:
        self.tracks = pyramid_sort(self.tracks)
        self.is_sorted = True
        return self.tracks

    def reset(self) -> List[Track]:
        self.tracks = list(self.original)
        self.is_sorted = False
        return self.tracks

    def move(self, from_index: int, to_index: int) -> List[Track]:
        self.tracks = move_track(self.tracks, from_index, to_index)
        return self.tracks

    @property
    def uris(self) -> List[str]:
        return [t.uri for t in self.tracks]

    def stats(self) -> OrderStats:
        return order_stats(self.tracks)
