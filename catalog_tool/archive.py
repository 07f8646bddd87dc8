"""
ZIP archive reading and entry classification.

The reader yields entries in the order of the archive's central directory
and never reorders them; callers that need a stable order sort explicitly.
"""

import io
import logging
import zipfile
import zlib
from os import PathLike
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import BinaryIO, Iterator, List, Union

from shared.constants import AUDIO_EXTENSIONS, IMAGE_EXTENSIONS
from shared.errors import ArchiveCorrupt

logger = logging.getLogger(__name__)

ArchiveSource = Union[str, bytes, BinaryIO, PathLike]


class EntryKind(Enum):
    """Content class of an archive entry."""
    AUDIO = "audio"
    IMAGE = "image"
    OTHER = "other"


def classify(path: str) -> EntryKind:
    """
    Classify an entry path by its extension (case-insensitive).

    Args:
        path: Entry path or file name

    Returns:
        EntryKind for the path
    """
    lower = path.lower()
    if any(lower.endswith(ext) for ext in AUDIO_EXTENSIONS):
        return EntryKind.AUDIO
    if any(lower.endswith(ext) for ext in IMAGE_EXTENSIONS):
        return EntryKind.IMAGE
    return EntryKind.OTHER


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of an archive. Payload bytes are read on demand."""
    path: str
    is_dir: bool
    file_size: int

    @property
    def filename(self) -> str:
        """Last path component."""
        return PurePosixPath(self.path.rstrip("/")).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename).suffix.lower()


@dataclass(frozen=True)
class ClassifiedEntry:
    entry: ArchiveEntry
    kind: EntryKind


class ArchiveReader:
    """
    Read-only view over a ZIP container.

    Accepts a filesystem path, raw bytes or a binary file object. Use as a
    context manager so the underlying file handle is released.
    """

    def __init__(self, source: ArchiveSource):
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        try:
            self._zip = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError) as e:
            logger.error("Failed to open archive: %s", e)
            raise ArchiveCorrupt(f"Archive could not be read: {e}")

    def __enter__(self) -> 'ArchiveReader':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def entries(self) -> Iterator[ArchiveEntry]:
        """Yield every entry, directories included, in central-directory order."""
        for info in self._zip.infolist():
            yield ArchiveEntry(path=info.filename, is_dir=info.is_dir(), file_size=info.file_size)

    def classified_entries(self) -> List[ClassifiedEntry]:
        """Classify every non-directory entry."""
        return [ClassifiedEntry(e, classify(e.path)) for e in self.entries() if not e.is_dir]

    def read(self, entry: Union[ArchiveEntry, str]) -> bytes:
        """
        Read the decompressed payload of an entry.

        Raises:
            ArchiveCorrupt: If the member is damaged (bad CRC, truncated data)
        """
        path = entry.path if isinstance(entry, ArchiveEntry) else entry
        try:
            return self._zip.read(path)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            logger.error("Failed to read archive member %s: %s", path, e)
            raise ArchiveCorrupt(f"Archive member {path} could not be read: {e}")

    def extract_to(self, entry: ArchiveEntry, dest_path) -> int:
        """
        Stream an entry's payload to dest_path.

        Returns:
            Number of bytes written
        """
        written = 0
        try:
            with self._zip.open(entry.path) as src, open(dest_path, "wb") as dst:
                for chunk in iter(lambda: src.read(64 * 1024), b""):
                    dst.write(chunk)
                    written += len(chunk)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            logger.error("Failed to extract archive member %s: %s", entry.path, e)
            raise ArchiveCorrupt(f"Archive member {entry.path} could not be read: {e}")
        return written
