"""
Error taxonomy for catalog ingestion and the HTTP API.

Every error carries the HTTP status the API answers with, so route handlers
can simply let them propagate.
"""

from enum import Enum
from typing import Optional


class ExtractionWarning(str, Enum):
    """Non-fatal conditions surfaced alongside a successful extraction."""
    TOO_MANY_TRACKS = "TooManyTracks"


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    status_code = 500

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class Unauthorized(CatalogError):
    """Missing, malformed or rejected bearer credential."""

    status_code = 401


class InvalidInput(CatalogError):
    """Required request fields are missing or malformed."""

    status_code = 400


class ArchiveCorrupt(CatalogError):
    """The uploaded archive cannot be parsed."""

    status_code = 500

    def __init__(self, message: str = "Archive could not be read") -> None:
        super().__init__(message, "Check that the file is a valid ZIP archive")


class NoAudioFound(CatalogError):
    """The archive holds no supported audio entry."""

    status_code = 500

    def __init__(self, message: str = "No audio files found in archive") -> None:
        super().__init__(message, "Supported formats: mp3, m4a, wav, flac, ogg")


class IndexOutOfRange(CatalogError, IndexError):
    """A reorder index falls outside the track list."""

    status_code = 400


class StorageUploadFailed(CatalogError):
    """A single blob upload was rejected by the storage provider."""

    status_code = 500

    def __init__(self, remote_key: str, reason: str = "") -> None:
        self.remote_key = remote_key
        message = f"Upload failed for {remote_key}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigError(CatalogError):
    """Configuration error."""

    status_code = 500
