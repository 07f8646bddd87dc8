"""
Ingestion engine: turns an uploaded ZIP archive into a committed CD record.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Union

from shared.constants import (
    CD_PREFIX,
    COVER_KEY_TEMPLATE,
    MAX_TRACKS_PER_CD,
    SIGNED_URL_TTL,
    SONG_KEY_TEMPLATE,
)
from shared.errors import InvalidInput, StorageUploadFailed
from shared.kv_store import KeyValueStore
from shared.models import CatalogRecord, Track
from .archive import ArchiveEntry, ArchiveReader
from .audio import AudioProcessor
from .extractor import extract_contents
from .reorder import apply_order
from .storage_provider import BlobStorageProvider

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """
    Outcome of one ingestion.

    Attributes:
        record: The committed CD
        warnings: Extraction warning codes (e.g. TooManyTracks)
        failed_files: Archive paths whose upload failed and were left out
    """
    record: CatalogRecord
    warnings: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)


def require_fields(**values: Optional[str]) -> None:
    """Raise InvalidInput naming every blank field."""
    missing = [name for name, value in values.items() if not (value or "").strip()]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")


class IngestionEngine:
    """
    Extracts an archive, uploads its cover and songs, and commits the record.

    Uploads run one file at a time. They are not transactional: a failed
    song upload is logged and skipped, objects already written stay written.
    """

    def __init__(self, storage: BlobStorageProvider, kv_store: KeyValueStore,
                 signed_url_ttl: int = SIGNED_URL_TTL, max_tracks: int = MAX_TRACKS_PER_CD,
                 sort_entries: bool = True):
        self.storage = storage
        self.kv_store = kv_store
        self.signed_url_ttl = signed_url_ttl
        self.max_tracks = max_tracks
        self.sort_entries = sort_entries

    def ingest(self, archive: Union[bytes, BinaryIO, str, Path], title: str, artist: str, genre: str,
               track_order: Optional[Sequence[str]] = None,
               archive_name: str = "upload.zip") -> IngestionResult:
        """
        Run the full ingestion for one archive.

        Args:
            archive: Archive bytes, binary stream or path
            title: CD title
            artist: CD artist
            genre: CD genre
            track_order: Optional archive paths of the retained tracks in the
                order they should be stored
            archive_name: Original upload name, for logs

        Returns:
            IngestionResult with the committed record

        Raises:
            InvalidInput: Missing fields or a track_order that does not match
            ArchiveCorrupt: The archive or one of its members cannot be read
            NoAudioFound: The archive contains no audio
        """
        require_fields(title=title, artist=artist, genre=genre)
        logger.info("Processing archive %s for '%s' by %s", archive_name, title, artist)

        staging_dir = Path(tempfile.mkdtemp(prefix="cd_ingest_"))
        try:
            archive_path = self._stage_archive(archive, staging_dir)
            with ArchiveReader(archive_path) as reader:
                extraction = extract_contents(
                    reader.entries(), max_tracks=self.max_tracks, sort_entries=self.sort_entries
                )
                tracks = extraction.tracks
                if track_order:
                    try:
                        tracks = apply_order(tracks, track_order)
                    except ValueError as e:
                        raise InvalidInput(str(e))

                cd_id = CatalogRecord.generate_id()
                cover_url = ""
                if extraction.cover is not None:
                    cover_url = self._upload_cover(reader, extraction.cover, cd_id, staging_dir)

                songs, failed = self._upload_tracks(reader, tracks, cd_id, staging_dir)
        finally:
            self._cleanup(staging_dir)

        record = CatalogRecord(
            id=cd_id,
            title=title.strip(),
            artist=artist.strip(),
            genre=genre.strip(),
            cover_url=cover_url,
            songs=songs,
        )
        self.kv_store.set(record.id, record.to_dict())
        logger.info("CD created from archive: %s - %s (%d songs)", record.title, record.artist, len(songs))
        if failed:
            logger.warning("CD %s is missing %d song(s) that failed to upload", record.id, len(failed))

        return IngestionResult(record=record, warnings=list(extraction.warnings), failed_files=failed)

    def create_record(self, title: str, artist: str, genre: str, cover_url: str = "",
                      songs: Optional[List[dict]] = None) -> CatalogRecord:
        """
        Commit a CD whose assets are already hosted elsewhere.

        Raises:
            InvalidInput: If title, artist or genre is blank
        """
        require_fields(title=title, artist=artist, genre=genre)
        tracks = [Track.from_dict(s, order=i) for i, s in enumerate(songs or [])]
        for i, track in enumerate(tracks):
            track.order = i

        record = CatalogRecord(
            id=CatalogRecord.generate_id(),
            title=title.strip(),
            artist=artist.strip(),
            genre=genre.strip(),
            cover_url=cover_url or "",
            songs=tracks,
        )
        self.kv_store.set(record.id, record.to_dict())
        logger.info("CD created: %s - %s", record.title, record.artist)
        return record

    def get_record(self, cd_id: str) -> Optional[CatalogRecord]:
        if not cd_id.startswith(CD_PREFIX):
            return None
        data = self.kv_store.get(cd_id)
        return CatalogRecord.from_dict(data) if data else None

    def list_records(self) -> List[CatalogRecord]:
        return [CatalogRecord.from_dict(d) for d in self.kv_store.get_by_prefix(CD_PREFIX)]

    def save_record(self, record: CatalogRecord) -> None:
        self.kv_store.set(record.id, record.to_dict())

    def _stage_archive(self, archive, staging_dir: Path) -> Path:
        """Write the upload into the staging directory."""
        archive_path = staging_dir / "upload.zip"
        if isinstance(archive, (bytes, bytearray)):
            archive_path.write_bytes(archive)
        elif isinstance(archive, (str, Path)):
            shutil.copyfile(archive, archive_path)
        else:
            with open(archive_path, "wb") as dst:
                shutil.copyfileobj(archive, dst)
        logger.debug("Archive staged at %s (%d bytes)", archive_path, archive_path.stat().st_size)
        return archive_path

    def _upload_cover(self, reader: ArchiveReader, cover: ArchiveEntry, cd_id: str, staging_dir: Path) -> str:
        """Upload the cover image. Returns its URL, or "" if the upload failed."""
        remote_key = COVER_KEY_TEMPLATE.format(cd_id=cd_id, ext=cover.extension)
        local_path = staging_dir / f"cover{cover.extension}"
        reader.extract_to(cover, local_path)
        try:
            self.storage.upload_file(str(local_path), remote_key, AudioProcessor.content_type(cover.filename))
        except StorageUploadFailed as e:
            logger.warning("Cover upload failed, continuing without cover: %s", e)
            return ""

        logger.info("Cover uploaded: %s", remote_key)
        return self.storage.get_file_url(remote_key, expires_in=self.signed_url_ttl)

    def _upload_tracks(self, reader: ArchiveReader, tracks: List[Track], cd_id: str,
                       staging_dir: Path):
        """Upload tracks in order. Returns (stored songs, failed archive paths)."""
        songs: List[Track] = []
        failed: List[str] = []

        for track in tracks:
            entry_name = Path(track.source_path).name
            remote_key = SONG_KEY_TEMPLATE.format(cd_id=cd_id, order=track.order, filename=entry_name)
            local_path = staging_dir / f"{track.order:02d}{Path(entry_name).suffix.lower()}"
            # a damaged member is an archive-level failure: ArchiveCorrupt aborts the
            # ingestion and objects already uploaded stay in storage
            reader.extract_to(
                ArchiveEntry(path=track.source_path, is_dir=False, file_size=track.file_size), local_path
            )
            duration = AudioProcessor.probe_duration(local_path)

            try:
                self.storage.upload_file(str(local_path), remote_key, AudioProcessor.content_type(entry_name))
            except StorageUploadFailed as e:
                logger.warning("Skipping %s: %s", track.source_path, e)
                failed.append(track.source_path)
                continue
            finally:
                local_path.unlink(missing_ok=True)

            songs.append(Track(
                title=track.title,
                order=len(songs),
                duration=duration,
                url=self.storage.get_file_url(remote_key, expires_in=self.signed_url_ttl),
                source_path=track.source_path,
                file_size=track.file_size,
            ))
            logger.info("Song uploaded: %s", remote_key)

        return songs, failed

    def _cleanup(self, staging_dir: Path) -> None:
        try:
            shutil.rmtree(staging_dir)
            logger.debug("Temporary files removed: %s", staging_dir)
        except OSError as e:
            logger.warning("Could not remove temporary files in %s: %s", staging_dir, e)
