"""
Client-side archive preview.

Mirrors the server extraction so an admin can inspect and reorder tracks
before uploading. Track payloads and the cover are staged to temporary
files; they live until the preview is cleared, replaced or closed.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from shared.constants import MAX_TRACKS_PER_CD
from shared.models import Track
from catalog_tool.archive import ArchiveReader, ArchiveSource
from catalog_tool.extractor import extract_contents
from catalog_tool.reorder import move_song

logger = logging.getLogger(__name__)


class ArchivePreview:
    """Extracted view of one archive with reorderable tracks."""

    def __init__(self, max_tracks: int = MAX_TRACKS_PER_CD):
        self.max_tracks = max_tracks
        self.tracks: List[Track] = []
        self.warnings: List[str] = []
        self.cover_path: Optional[Path] = None
        self._staged: dict = {}
        self._staging_dir: Optional[Path] = None

    def __enter__(self) -> 'ArchivePreview':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()

    @property
    def is_loaded(self) -> bool:
        return self._staging_dir is not None

    @property
    def total_size(self) -> int:
        """Combined size of the retained tracks in bytes."""
        return sum(t.file_size for t in self.tracks)

    def load(self, source: ArchiveSource) -> 'ArchivePreview':
        """
        Extract source, replacing whatever was loaded before.

        Raises:
            ArchiveCorrupt: If the archive cannot be read
            NoAudioFound: If the archive contains no audio
        """
        self.clear()
        self._staging_dir = Path(tempfile.mkdtemp(prefix="cd_preview_"))
        try:
            with ArchiveReader(source) as reader:
                result = extract_contents(reader.entries(), max_tracks=self.max_tracks)
                for track in result.tracks:
                    staged = self._staging_dir / f"{track.order:02d}_{Path(track.source_path).name}"
                    staged.write_bytes(reader.read(track.source_path))
                    self._staged[track.source_path] = staged
                if result.cover is not None:
                    self.cover_path = self._staging_dir / f"cover{result.cover.extension}"
                    self.cover_path.write_bytes(reader.read(result.cover))
        except Exception:
            self.clear()
            raise

        self.tracks = result.tracks
        self.warnings = result.warnings
        logger.debug("Preview staged %d track(s) in %s", len(self.tracks), self._staging_dir)
        return self

    def staged_path(self, track: Track) -> Optional[Path]:
        """Temporary file holding a track's payload."""
        return self._staged.get(track.source_path)

    def move_song(self, from_index: int, to_index: int) -> List[Track]:
        """Move a track and renumber; raises IndexOutOfRange on bad indices."""
        self.tracks = move_song(self.tracks, from_index, to_index)
        return self.tracks

    def track_order(self) -> List[str]:
        """Archive paths in the current order, as submitted to the server."""
        return [t.source_path for t in self.tracks]

    def clear(self) -> None:
        """Release every staged file and forget the loaded archive."""
        if self._staging_dir is not None:
            shutil.rmtree(self._staging_dir, ignore_errors=True)
            logger.debug("Preview staging released: %s", self._staging_dir)
        self._staging_dir = None
        self._staged = {}
        self.tracks = []
        self.warnings = []
        self.cover_path = None
