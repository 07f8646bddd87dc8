"""
Audio file helpers: duration probing and content types.
"""

import logging
from pathlib import Path
from typing import Union

from mutagen import File as MutagenFile

from shared.constants import AUDIO_EXTENSIONS, CONTENT_TYPES, DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


class AudioProcessor:
    """Handler for audio file operations."""

    @staticmethod
    def is_supported_format(file_path: Union[str, Path]) -> bool:
        """Check if the file extension is an accepted audio format."""
        return Path(file_path).suffix.lower() in AUDIO_EXTENSIONS

    @staticmethod
    def content_type(file_name: Union[str, Path]) -> str:
        """
        MIME type to store a file under.

        Args:
            file_name: File name or path

        Returns:
            MIME type, application/octet-stream when unknown
        """
        return CONTENT_TYPES.get(Path(file_name).suffix.lower(), DEFAULT_CONTENT_TYPE)

    @staticmethod
    def probe_duration(file_path: Union[str, Path]) -> int:
        """
        Read the duration of an audio file with mutagen.

        Args:
            file_path: Path to audio file

        Returns:
            Duration in whole seconds, 0 if the file cannot be decoded
        """
        try:
            audio = MutagenFile(str(file_path))
        except Exception as e:  # mutagen raises a wide range of parse errors
            logger.debug("Could not probe %s: %s", file_path, e)
            return 0

        if audio is None or getattr(audio, "info", None) is None:
            return 0
        length = getattr(audio.info, "length", 0) or 0
        return int(round(length))
