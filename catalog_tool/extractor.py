"""
Builds the track list and cover choice for a CD from archive entries.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from shared.constants import MAX_TRACKS_PER_CD
from shared.errors import ExtractionWarning, NoAudioFound
from shared.models import Track
from .archive import ArchiveEntry, EntryKind, classify

logger = logging.getLogger(__name__)

MACOS_METADATA_DIR = "__MACOSX"


@dataclass
class ExtractionResult:
    """
    Outcome of walking an archive.

    Attributes:
        cover: First image entry encountered, if any
        tracks: Retained tracks, `order` = 0..N-1
        warnings: Warning codes raised during extraction
    """
    cover: Optional[ArchiveEntry]
    tracks: List[Track]
    warnings: List[str] = field(default_factory=list)


def title_from_path(path: str) -> str:
    """Song title for an entry: the file name without its last extension."""
    name = PurePosixPath(path.rstrip("/")).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def is_metadata_entry(path: str) -> bool:
    """True for macOS resource-fork entries (`__MACOSX/`, `._name`) that are not real files."""
    parts = PurePosixPath(path).parts
    return bool(parts) and (parts[0] == MACOS_METADATA_DIR or parts[-1].startswith("._"))


def extract_contents(entries: Iterable[ArchiveEntry], max_tracks: int = MAX_TRACKS_PER_CD,
                     sort_entries: bool = True) -> ExtractionResult:
    """
    Walk archive entries and build the CD's tracks and cover.

    Audio entries become tracks in encounter order; the first image found is
    the cover and later images are ignored. Past max_tracks the list is cut
    and a TooManyTracks warning is added.
    macOS resource-fork entries are skipped.

    Args:
        entries: Entries as yielded by ArchiveReader.entries()
        max_tracks: Track cap per CD
        sort_entries: Walk entries sorted by path instead of container order,
            so the cover and track order do not depend on the archiver used

    Returns:
        ExtractionResult

    Raises:
        NoAudioFound: If no audio entry exists
    """
    candidates = [e for e in entries if not e.is_dir and not is_metadata_entry(e.path)]
    if sort_entries:
        candidates.sort(key=lambda e: e.path)

    tracks: List[Track] = []
    cover: Optional[ArchiveEntry] = None

    for entry in candidates:
        kind = classify(entry.path)
        if kind is EntryKind.AUDIO:
            tracks.append(Track(
                title=title_from_path(entry.path),
                order=len(tracks),
                source_path=entry.path,
                file_size=entry.file_size,
            ))
        elif kind is EntryKind.IMAGE and cover is None:
            cover = entry

    logger.info("Archive holds %d audio file(s), cover: %s", len(tracks), cover.path if cover else "none")

    if not tracks:
        raise NoAudioFound()

    warnings: List[str] = []
    if len(tracks) > max_tracks:
        logger.warning("Archive has %d tracks, keeping the first %d", len(tracks), max_tracks)
        tracks = tracks[:max_tracks]
        warnings.append(ExtractionWarning.TOO_MANY_TRACKS.value)

    return ExtractionResult(cover=cover, tracks=tracks, warnings=warnings)
