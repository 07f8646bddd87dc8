"""
Track reordering.

Every operation leaves `order` equal to the list position, so a track list
is always a permutation of 0..N-1.
"""

from dataclasses import replace
from typing import List, Sequence

from shared.errors import IndexOutOfRange
from shared.models import Track


def renumber(tracks: Sequence[Track]) -> List[Track]:
    """Return copies of tracks with `order` set to their position."""
    return [replace(track, order=idx) for idx, track in enumerate(tracks)]


def move_song(tracks: Sequence[Track], from_index: int, to_index: int) -> List[Track]:
    """
    Move the track at from_index to to_index.

    The input is not modified.

    Args:
        tracks: Current ordered tracks
        from_index: Position of the track to move
        to_index: Position it should end up at

    Returns:
        New renumbered list

    Raises:
        IndexOutOfRange: If either index is outside the list
    """
    size = len(tracks)
    for name, index in (("from_index", from_index), ("to_index", to_index)):
        if not 0 <= index < size:
            raise IndexOutOfRange(f"{name} {index} out of range for {size} track(s)")

    updated = list(tracks)
    moved = updated.pop(from_index)
    updated.insert(to_index, moved)
    return renumber(updated)


def apply_order(tracks: Sequence[Track], source_paths: Sequence[str]) -> List[Track]:
    """
    Arrange tracks to follow source_paths.

    Raises:
        ValueError: If source_paths is not a permutation of the tracks' paths
    """
    by_path = {t.source_path: t for t in tracks}
    if len(source_paths) != len(tracks) or set(source_paths) != set(by_path):
        raise ValueError("Track order must list every track exactly once")
    return renumber([by_path[path] for path in source_paths])
