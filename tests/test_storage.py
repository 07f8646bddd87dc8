from unittest.mock import MagicMock

import boto3
import pytest
from botocore.stub import Stubber

from shared.config import ServerConfig
from shared.errors import ConfigError, StorageUploadFailed
from shared.kv_store import MemoryKeyValueStore
from catalog_tool.ingest import IngestionEngine
from catalog_tool.local_provider import LocalStorageProvider
from catalog_tool.provider_factory import StorageProviderFactory
from catalog_tool.s3_provider import S3StorageProvider
from tests.conftest import make_zip


def test_local_upload_and_lookup(storage, tmp_path):
    source = tmp_path / "song.mp3"
    source.write_bytes(b"audio")

    storage.upload_file(str(source), "cd_1/songs/00_song.mp3", "audio/mpeg")
    storage.upload_bytes("cd_1/cover.jpg", b"img", "image/jpeg")

    assert storage.file_exists("cd_1/songs/00_song.mp3")
    assert storage.get_file_url("cd_1/cover.jpg").startswith("file://")
    assert [f["key"] for f in storage.list_files("cd_1/")] == ["cd_1/cover.jpg", "cd_1/songs/00_song.mp3"]
    assert storage.delete_file("cd_1/cover.jpg")
    assert not storage.file_exists("cd_1/cover.jpg")


def test_local_rejects_escaping_keys(storage):
    with pytest.raises(StorageUploadFailed):
        storage.upload_bytes("../outside.txt", b"x", "text/plain")
    assert storage.get_file_url("../../etc/passwd") == ""


def test_local_missing_source_fails(storage, tmp_path):
    with pytest.raises(StorageUploadFailed) as excinfo:
        storage.upload_file(str(tmp_path / "missing.mp3"), "cd_1/songs/00_x.mp3", "audio/mpeg")
    assert excinfo.value.remote_key == "cd_1/songs/00_x.mp3"


def test_local_requires_base_path():
    provider = LocalStorageProvider()
    assert provider.authenticate({}) is False
    assert provider.ensure_bucket("cds") is False


def _s3_with_client(client):
    provider = S3StorageProvider()
    provider.s3_client = client
    provider.bucket_name = "cds"
    return provider


def test_s3_upload_sets_content_type():
    client = MagicMock()
    _s3_with_client(client).upload_bytes("cd_1/cover.png", b"img", "image/png")
    kwargs = client.put_object.call_args[1]
    assert kwargs["Bucket"] == "cds"
    assert kwargs["Key"] == "cd_1/cover.png"
    assert kwargs["ContentType"] == "image/png"


def _stubbed_s3():
    client = boto3.client(
        "s3", region_name="us-east-1",
        aws_access_key_id="test", aws_secret_access_key="test",
    )
    return client, Stubber(client)


def test_s3_rejected_upload_becomes_upload_failure(tmp_path):
    client, stubber = _stubbed_s3()
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
    source = tmp_path / "a.mp3"
    source.write_bytes(b"x")

    with stubber, pytest.raises(StorageUploadFailed) as excinfo:
        _s3_with_client(client).upload_file(str(source), "cd_1/songs/00_a.mp3", "audio/mpeg")
    assert excinfo.value.remote_key == "cd_1/songs/00_a.mp3"


def test_s3_rejected_song_is_skipped_during_ingest():
    client, stubber = _stubbed_s3()
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
    stubber.add_response("put_object", {"ETag": '"etag"'})
    kv_store = MemoryKeyValueStore()
    engine = IngestionEngine(_s3_with_client(client), kv_store)

    with stubber:
        result = engine.ingest(make_zip({"a.mp3": b"1", "b.mp3": b"2"}), title="T", artist="A", genre="G")

    assert [s.title for s in result.record.songs] == ["b"]
    assert result.record.songs[0].order == 0
    assert result.failed_files == ["a.mp3"]
    assert kv_store.get(result.record.id) == result.record.to_dict()
    stubber.assert_no_pending_responses()


def test_s3_presigned_url():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://signed"
    url = _s3_with_client(client).get_file_url("cd_1/cover.jpg", expires_in=60)

    assert url == "https://signed"
    assert client.generate_presigned_url.call_args[1]["ExpiresIn"] == 60


def test_factory_builds_local_provider(tmp_path):
    config = ServerConfig(data_dir=str(tmp_path), bucket="albums")
    provider = StorageProviderFactory.from_config(config)

    assert isinstance(provider, LocalStorageProvider)
    assert provider.bucket_name == "albums"
    assert (tmp_path / "storage" / "albums").is_dir()


def test_factory_rejects_unknown_provider():
    with pytest.raises(ConfigError):
        StorageProviderFactory.create("ftp")


def test_factory_s3_without_credentials():
    with pytest.raises(ConfigError):
        StorageProviderFactory.from_config(ServerConfig(storage_provider="s3"))
