"""Pyramid ordering engine — pure business logic, no I/O.

Provides:
- Pyramid sort (lowest energy at both ends, highest in the middle)
- Single-track move for manual reordering
"""

from __future__ import annotations

from typing import Callable, List, Sequence, TypeVar

from core.errors import ValidationError
from core.models import Track

T = TypeVar("T")

# Tracks without audio features rank as the calmest possible track.
DEFAULT_ENERGY = 0.0


def energy_key(track: Track) -> float:
    """Sort key: the track's energy, or ``DEFAULT_ENERGY`` when unknown."""
    return track.energy if track.energy is not None else DEFAULT_ENERGY


# ---------------------------------------------------------------------------
# Pyramid sort
# ---------------------------------------------------------------------------

def pyramid_sort(
    tracks: Sequence[T],
    key: Callable[[T], float] = energy_key,  # type: ignore[assignment]
) -> List[T]:
    """Reorder *tracks* into a low → high → low energy curve.

    The input is stably sorted ascending by *key*.  Sorted items at even
    indexes fill the output from the left, odd ones from the right, so the
    two lowest tracks open and close the list and the highest lands in the
    middle.  Ties keep their input order.

    Returns a **new** list (does not mutate input).
    """
    ordered = sorted(tracks, key=key)
    result: List[T] = list(ordered)
    left, right = 0, len(ordered) - 1
    for i, item in enumerate(ordered):
        if i % 2 == 0:
            result[left] = item
            left += 1
        else:
            result[right] = item
            right -= 1
    return result


# ---------------------------------------------------------------------------
# Manual reorder
# ---------------------------------------------------------------------------

def move_track(tracks: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Move the item at *from_index* so it ends up at *to_index*.

    Same semantics as a drag-and-drop splice: remove, then insert into the
    shortened list.  Returns a new list.
    """
    n = len(tracks)
    if not 0 <= from_index < n or not 0 <= to_index < n:
        raise ValidationError(
            f"Move {from_index} -> {to_index} out of range for {n} tracks"
        )
    result = list(tracks)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result
