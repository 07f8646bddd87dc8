"""
Data models for catalog records, tracks, media and site settings.

This module defines the core data structures shared by the ingestion
pipeline, the HTTP API and the admin client. Wire representations use the
camelCase keys the web front end consumes.
"""

from dataclasses import dataclass, asdict, field, fields
from typing import List, Dict, Optional, Any
import threading
import time
from datetime import datetime, timezone

from shared.constants import CD_PREFIX, PHOTO_PREFIX, VIDEO_PREFIX, DEFAULT_SITE_SETTINGS
from shared.errors import InvalidInput


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


_id_lock = threading.Lock()
_last_id_millis: Dict[str, int] = {}


def time_based_id(prefix: str) -> str:
    """
    Build a `<prefix><epoch millis>` identifier.

    Ids issued in the same millisecond for the same prefix are bumped so
    they stay unique within the process.
    """
    millis = int(time.time() * 1000)
    with _id_lock:
        millis = max(millis, _last_id_millis.get(prefix, 0) + 1)
        _last_id_millis[prefix] = millis
    return f"{prefix}{millis}"


@dataclass
class Track:
    """
    Represents one song inside a CD.

    Attributes:
        title: Song title, derived from the archive file name
        order: Position inside the CD (0-based, contiguous)
        duration: Duration in seconds (0 when unknown)
        url: Signed retrieval URL once persisted
        source_path: Archive entry path the track came from (not on the wire)
        file_size: Uncompressed size in bytes (not on the wire)
    """
    title: str
    order: int
    duration: int = 0
    url: str = ""
    source_path: Optional[str] = None
    file_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert track to its wire dictionary."""
        return {
            "title": self.title,
            "url": self.url,
            "duration": self.duration,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], order: int = 0) -> 'Track':
        """
        Create Track from a wire dictionary, filling a missing order.

        Raises:
            InvalidInput: If order or duration is not a whole number
        """
        try:
            order = int(data.get("order", order))
            duration = int(data.get("duration") or 0)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid order or duration for song {data.get('title', '')!r}")
        return cls(
            title=str(data.get("title", "")),
            order=order,
            duration=duration,
            url=str(data.get("url") or ""),
        )


@dataclass
class CatalogRecord:
    """
    A CD: metadata, cover and ordered song list.

    The id is fixed for the lifetime of the record; play and download
    counters only ever grow.
    """
    id: str
    title: str
    artist: str
    genre: str
    cover_url: str = ""
    songs: List[Track] = field(default_factory=list)
    play_count: int = 0
    download_count: int = 0
    created_at: str = field(default_factory=utc_now_iso)

    @staticmethod
    def generate_id() -> str:
        """Generate a time-derived CD identifier."""
        return time_based_id(CD_PREFIX)

    def increment_play(self) -> int:
        self.play_count += 1
        return self.play_count

    def increment_download(self) -> int:
        self.download_count += 1
        return self.download_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to its wire dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "genre": self.genre,
            "coverUrl": self.cover_url,
            "songs": [song.to_dict() for song in self.songs],
            "playCount": self.play_count,
            "downloadCount": self.download_count,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogRecord':
        """Create CatalogRecord from a wire dictionary."""
        songs = [Track.from_dict(s, order=i) for i, s in enumerate(data.get("songs") or [])]
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            artist=data.get("artist", ""),
            genre=data.get("genre", ""),
            cover_url=data.get("coverUrl") or "",
            songs=songs,
            play_count=int(data.get("playCount") or 0),
            download_count=int(data.get("downloadCount") or 0),
            created_at=data.get("createdAt") or utc_now_iso(),
        )


@dataclass
class MediaItem:
    """A gallery entry pointing at an externally hosted photo or video."""
    id: str
    url: str
    title: str
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MediaItem':
        return cls(
            id=data["id"],
            url=data.get("url", ""),
            title=data.get("title", ""),
            created_at=data.get("createdAt") or utc_now_iso(),
        )


@dataclass
class Photo(MediaItem):
    DEFAULT_TITLE = "Foto"

    @classmethod
    def create(cls, url: str, title: Optional[str] = None) -> 'Photo':
        return cls(id=time_based_id(PHOTO_PREFIX), url=url, title=title or cls.DEFAULT_TITLE)


@dataclass
class Video(MediaItem):
    DEFAULT_TITLE = "Vídeo"

    @classmethod
    def create(cls, url: str, title: Optional[str] = None) -> 'Video':
        return cls(id=time_based_id(VIDEO_PREFIX), url=url, title=title or cls.DEFAULT_TITLE)


@dataclass
class SiteSettings:
    """
    Public site branding edited from the admin panel.

    Keys the front end sends that are not modelled here are kept in
    `extra` and written back untouched.
    """
    site_name: str = DEFAULT_SITE_SETTINGS["siteName"]
    site_slogan: str = DEFAULT_SITE_SETTINGS["siteSlogan"]
    logo_url: str = DEFAULT_SITE_SETTINGS["logoUrl"]
    banner_title: str = DEFAULT_SITE_SETTINGS["bannerTitle"]
    banner_subtitle: str = DEFAULT_SITE_SETTINGS["bannerSubtitle"]
    banner_image_url: str = DEFAULT_SITE_SETTINGS["bannerImageUrl"]
    extra: Dict[str, Any] = field(default_factory=dict)

    _WIRE_KEYS = {
        "siteName": "site_name",
        "siteSlogan": "site_slogan",
        "logoUrl": "logo_url",
        "bannerTitle": "banner_title",
        "bannerSubtitle": "banner_subtitle",
        "bannerImageUrl": "banner_image_url",
    }

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for wire_key, attr in self._WIRE_KEYS.items():
            data[wire_key] = getattr(self, attr)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SiteSettings':
        kwargs = {}
        extra = {}
        for key, value in data.items():
            if key in cls._WIRE_KEYS:
                kwargs[cls._WIRE_KEYS[key]] = "" if value is None else str(value)
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)


@dataclass
class AuthUser:
    """Identity returned by the identity service."""
    id: str
    email: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthUser':
        return cls(id=str(data.get("id", "")), email=data.get("email") or "")


@dataclass
class TokenPair:
    """Access and refresh token issued by the identity service."""
    access_token: str
    refresh_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenPair':
        """Create TokenPair from dictionary, filtering unknown keys."""
        field_names = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        return cls(**filtered_data)
