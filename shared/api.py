"""
HTTP API server for the music catalog.
Serves the public gallery (CDs, photos, videos, site settings) and the
authenticated admin endpoints, including bulk CD ingestion from ZIP archives.
"""

import json
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException

from shared.config import ServerConfig
from shared.constants import MAX_ARCHIVE_SIZE, PHOTO_PREFIX, VIDEO_PREFIX, SETTINGS_KEY
from shared.errors import CatalogError, InvalidInput
from shared.identity import (
    HostedIdentityService,
    IdentityService,
    StaticTokenIdentityService,
    bearer_token,
)
from shared.kv_store import KeyValueStore, SQLiteKeyValueStore
from shared.models import Photo, SiteSettings, Video
from catalog_tool.ingest import IngestionEngine
from catalog_tool.provider_factory import StorageProviderFactory
from catalog_tool.storage_provider import BlobStorageProvider

logger = logging.getLogger(__name__)


@dataclass
class CatalogServices:
    """External collaborators the routes work against."""
    kv_store: KeyValueStore
    storage: BlobStorageProvider
    identity: IdentityService
    engine: IngestionEngine

    @classmethod
    def from_config(cls, config: ServerConfig) -> 'CatalogServices':
        kv_store = SQLiteKeyValueStore(str(config.kv_path))
        storage = StorageProviderFactory.from_config(config)

        if config.auth_url:
            identity = HostedIdentityService(config.auth_url, config.auth_anon_key, config.network_timeout)
        else:
            if not config.admin_tokens:
                logger.warning("No identity service or admin tokens configured; admin routes will reject all requests")
            identity = StaticTokenIdentityService(config.admin_tokens)

        engine = IngestionEngine(storage, kv_store, signed_url_ttl=config.signed_url_ttl)
        return cls(kv_store=kv_store, storage=storage, identity=identity, engine=engine)


app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = MAX_ARCHIVE_SIZE
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*")

services: Optional[CatalogServices] = None


def init_services(new_services: Optional[CatalogServices]) -> None:
    """Install (or with None, reset) the services used by the routes."""
    global services
    services = new_services


def get_core() -> CatalogServices:
    """Return the services, building them from the environment on first use."""
    global services
    if services is None:
        services = CatalogServices.from_config(ServerConfig.from_env())
        logger.info("Core services initialized")
    return services


def require_auth(view):
    """Reject the request with 401 unless it carries a valid bearer token."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = bearer_token(request.headers.get('Authorization'))
        g.user = get_core().identity.verify(token)
        logger.debug("Authenticated %s for %s", g.user.email or g.user.id, request.path)
        return view(*args, **kwargs)
    return wrapper


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def _notify(kind: str) -> None:
    socketio.emit('catalog_updated', {'kind': kind})


@app.errorhandler(CatalogError)
def handle_catalog_error(error: CatalogError):
    if error.status_code >= 500:
        logger.error("%s: %s", type(error).__name__, error.message)
    return jsonify({"error": error.message}), error.status_code


@app.errorhandler(HTTPException)
def handle_http_error(error: HTTPException):
    return jsonify({"error": error.description}), error.code


@app.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    logger.exception("Unhandled error on %s", request.path)
    return jsonify({"error": f"Internal error: {error}"}), 500


@app.route('/api/health')
def health_check():
    return jsonify({"status": "ok"})


@app.route('/')
def home():
    return jsonify({
        "status": "online",
        "service": "CD Catalog API",
        "version": "1.0.0"
    })


# --- Auth ---

@app.route('/api/refresh-token', methods=['POST'])
def refresh_token():
    data = request.get_json(silent=True) or {}
    token = data.get('refreshToken')
    if not token:
        return jsonify({"error": "Refresh token not provided"}), 400

    pair = get_core().identity.refresh(token)
    logger.info("Token refreshed")
    return jsonify(pair.to_dict())


# --- CD Endpoints ---

@app.route('/api/upload-cd', methods=['POST'])
@require_auth
def upload_cd():
    data = _json_body()
    songs = data.get('songs') or []
    if not isinstance(songs, list) or not all(isinstance(s, dict) for s in songs):
        raise InvalidInput("songs must be a list of objects")

    record = get_core().engine.create_record(
        title=data.get('title'),
        artist=data.get('artist'),
        genre=data.get('genre'),
        cover_url=data.get('coverUrl') or "",
        songs=songs,
    )
    _notify('cd')
    return jsonify({"success": True, "cd": record.to_dict()})


@app.route('/api/upload-cd-zip', methods=['POST'])
@require_auth
def upload_cd_zip():
    zip_file = request.files.get('zipFile')
    title = request.form.get('title')
    artist = request.form.get('artist')
    genre = request.form.get('genre')

    if zip_file is None or not zip_file.filename or not title or not artist or not genre:
        raise InvalidInput("Incomplete data: zipFile, title, artist and genre are required")

    track_order = None
    raw_order = request.form.get('trackOrder')
    if raw_order:
        try:
            track_order = json.loads(raw_order)
        except ValueError:
            raise InvalidInput("trackOrder must be a JSON list of archive paths")
        if not isinstance(track_order, list) or not all(isinstance(p, str) for p in track_order):
            raise InvalidInput("trackOrder must be a JSON list of archive paths")

    result = get_core().engine.ingest(
        zip_file.stream,
        title=title,
        artist=artist,
        genre=genre,
        track_order=track_order,
        archive_name=zip_file.filename,
    )
    _notify('cd')
    return jsonify({
        "success": True,
        "cd": result.record.to_dict(),
        "warnings": result.warnings,
    })


@app.route('/api/cds', methods=['GET'])
def list_cds():
    cds = get_core().engine.list_records()
    logger.debug("Returning %d CDs", len(cds))
    return jsonify({"cds": [cd.to_dict() for cd in cds]})


@app.route('/api/cds/<cd_id>', methods=['GET'])
def get_cd(cd_id):
    cd = get_core().engine.get_record(cd_id)
    if not cd:
        return jsonify({"error": "CD not found"}), 404
    return jsonify({"cd": cd.to_dict()})


@app.route('/api/cds/<cd_id>/play', methods=['POST'])
def increment_play(cd_id):
    engine = get_core().engine
    cd = engine.get_record(cd_id)
    if not cd:
        return jsonify({"error": "CD not found"}), 404

    count = cd.increment_play()
    engine.save_record(cd)
    logger.info("Play count for %s: %d", cd.title, count)
    return jsonify({"success": True, "playCount": count})


@app.route('/api/cds/<cd_id>/download', methods=['POST'])
def increment_download(cd_id):
    engine = get_core().engine
    cd = engine.get_record(cd_id)
    if not cd:
        return jsonify({"error": "CD not found"}), 404

    count = cd.increment_download()
    engine.save_record(cd)
    logger.info("Download count for %s: %d", cd.title, count)
    return jsonify({"success": True, "downloadCount": count})


# --- Gallery Endpoints ---

@app.route('/api/upload-photo', methods=['POST'])
@require_auth
def upload_photo():
    data = _json_body()
    if not data.get('url'):
        raise InvalidInput("url is required")

    photo = Photo.create(data['url'], data.get('title'))
    get_core().kv_store.set(photo.id, photo.to_dict())
    logger.info("Photo added: %s", photo.title)
    _notify('photo')
    return jsonify({"success": True, "photo": photo.to_dict()})


@app.route('/api/photos', methods=['GET'])
def list_photos():
    return jsonify({"photos": get_core().kv_store.get_by_prefix(PHOTO_PREFIX)})


@app.route('/api/upload-video', methods=['POST'])
@require_auth
def upload_video():
    data = _json_body()
    if not data.get('url'):
        raise InvalidInput("url is required")

    video = Video.create(data['url'], data.get('title'))
    get_core().kv_store.set(video.id, video.to_dict())
    logger.info("Video added: %s", video.title)
    _notify('video')
    return jsonify({"success": True, "video": video.to_dict()})


@app.route('/api/videos', methods=['GET'])
def list_videos():
    return jsonify({"videos": get_core().kv_store.get_by_prefix(VIDEO_PREFIX)})


# --- Settings ---

@app.route('/api/save-settings', methods=['POST'])
@require_auth
def save_settings():
    settings = SiteSettings.from_dict(_json_body())
    get_core().kv_store.set(SETTINGS_KEY, settings.to_dict())
    logger.info("Site settings updated")
    _notify('settings')
    return jsonify({"success": True, "settings": settings.to_dict()})


@app.route('/api/settings', methods=['GET'])
def get_settings():
    stored = get_core().kv_store.get(SETTINGS_KEY)
    settings = SiteSettings.from_dict(stored) if stored else SiteSettings()
    return jsonify({"settings": settings.to_dict()})


# --- Server Management ---

def start_api(config: Optional[ServerConfig] = None, debug: bool = False):
    """Build the services for config and serve until interrupted."""
    config = config or ServerConfig.from_env()
    init_services(CatalogServices.from_config(config))
    logger.info("Storage: %s bucket '%s'", config.storage_provider, config.bucket)
    logger.info("Key-value store: %s", config.kv_path)
    logger.info("Starting server on %s:%s", config.host, config.port)
    socketio.run(app, host=config.host, port=config.port, debug=debug, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    start_api()
