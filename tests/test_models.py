import pytest

from shared.crypto import CredentialManager
from shared.errors import InvalidInput
from shared.models import CatalogRecord, Photo, SiteSettings, Track, Video, time_based_id
from catalog_tool.audio import AudioProcessor


def test_record_wire_format():
    record = CatalogRecord(
        id="cd_1", title="T", artist="A", genre="G", cover_url="u",
        songs=[Track(title="s", order=0, duration=3, url="x", source_path="s.mp3", file_size=9)],
    )
    data = record.to_dict()

    assert set(data) == {"id", "title", "artist", "genre", "coverUrl", "songs",
                         "playCount", "downloadCount", "createdAt"}
    assert data["songs"] == [{"title": "s", "url": "x", "duration": 3, "order": 0}]
    assert CatalogRecord.from_dict(data).to_dict() == data


def test_counters_only_grow():
    record = CatalogRecord(id="cd_1", title="T", artist="A", genre="G")
    assert record.increment_play() == 1
    assert record.increment_play() == 2
    assert record.increment_download() == 1


def test_ids_are_unique_and_prefixed():
    ids = [CatalogRecord.generate_id() for _ in range(50)]
    assert len(set(ids)) == 50
    assert all(i.startswith("cd_") for i in ids)
    assert time_based_id("photo_").startswith("photo_")


def test_media_default_titles():
    assert Photo.create("u").title == "Foto"
    assert Video.create("u").title == "Vídeo"
    assert Video.create("u", "Show").title == "Show"


def test_settings_keep_unknown_keys():
    settings = SiteSettings.from_dict({"siteName": "X", "accent": "#fff"})
    data = settings.to_dict()
    assert data["siteName"] == "X"
    assert data["accent"] == "#fff"
    assert data["bannerImageUrl"] == ""


def test_content_types():
    assert AudioProcessor.content_type("a/B.MP3") == "audio/mpeg"
    assert AudioProcessor.content_type("cover.webp") == "image/webp"
    assert AudioProcessor.content_type("x.bin") == "application/octet-stream"
    assert AudioProcessor.is_supported_format("x.FLAC")


def test_probe_duration_of_non_audio(tmp_path):
    path = tmp_path / "fake.mp3"
    path.write_bytes(b"not audio at all")
    assert AudioProcessor.probe_duration(path) == 0


def test_credential_round_trip():
    key = CredentialManager.generate_key_from_password("pw", b"salt")
    token = CredentialManager.encrypt("secret", key)
    assert CredentialManager.decrypt(token, key) == "secret"

    other = CredentialManager.generate_key_from_password("other", b"salt")
    assert CredentialManager.decrypt(token, other) is None


def test_credential_json_round_trip():
    key = CredentialManager.generate_key_from_password("pw", b"salt")
    token = CredentialManager.encrypt_json({"access_token": "a"}, key)
    assert CredentialManager.decrypt_json(token, key) == {"access_token": "a"}
    assert CredentialManager.decrypt_json(CredentialManager.encrypt("[1]", key), key) is None


@pytest.mark.parametrize("song", [
    {"title": "x", "duration": "abc"},
    {"title": "x", "order": "first"},
    {"title": "x", "duration": [1]},
])
def test_track_rejects_non_numeric_fields(song):
    with pytest.raises(InvalidInput):
        Track.from_dict(song)


def test_track_accepts_numeric_strings():
    track = Track.from_dict({"title": "x", "duration": "215", "order": "2"})
    assert (track.duration, track.order) == (215, 2)
