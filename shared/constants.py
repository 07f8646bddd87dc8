"""
Shared constants used across the platform.
"""

# Archive content classification
AUDIO_EXTENSIONS = [".mp3", ".m4a", ".wav", ".flac", ".ogg"]
IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp"]

CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Ingestion limits
MAX_TRACKS_PER_CD = 30
MAX_ARCHIVE_SIZE = 500 * 1024 * 1024  # 500MB, same as the bucket file limit

# Storage settings
DEFAULT_BUCKET = "cds"
SIGNED_URL_TTL = 31536000  # 1 year
COVER_KEY_TEMPLATE = "{cd_id}/cover{ext}"
SONG_KEY_TEMPLATE = "{cd_id}/songs/{order:02d}_{filename}"

# Key-value store prefixes
CD_PREFIX = "cd_"
PHOTO_PREFIX = "photo_"
VIDEO_PREFIX = "video_"
SETTINGS_KEY = "site_settings"

# Site settings shown before an admin saves any
DEFAULT_SITE_SETTINGS = {
    "siteName": "Luís Da Mídia",
    "siteSlogan": "Sua música, seu estilo",
    "logoUrl": "",
    "bannerTitle": "Bem-vindo ao Luís Da Mídia",
    "bannerSubtitle": "Descubra e baixe os melhores álbuns musicais",
    "bannerImageUrl": "",
}

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/cd-catalog"
DEFAULT_DATA_DIR = "~/.local/share/cd-catalog"
SESSION_FILENAME = "session.json"
KV_DB_FILENAME = "catalog.db"
STORAGE_DIRNAME = "storage"

# Network Settings
DEFAULT_PORT = 5005
DEFAULT_SERVER_URL = "http://localhost:5005"
DEFAULT_NETWORK_TIMEOUT = 30  # seconds
