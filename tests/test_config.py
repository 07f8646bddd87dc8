import os

import pytest

from shared.config import ServerConfig
from shared.errors import ConfigError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # load_dotenv writes straight into os.environ
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in ("PORT", "STORAGE_PROVIDER", "ADMIN_TOKENS", "AUTH_URL", "DATA_DIR", "LOG_LEVEL", "SIGNED_URL_TTL"):
        monkeypatch.delenv(f"CATALOG_{name}", raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    config = ServerConfig.from_env(env_file=str(tmp_path / "missing.env"))
    assert config.port == 5005
    assert config.storage_provider == "local"
    assert config.admin_tokens == []
    assert config.signed_url_ttl == 31536000


def test_reads_environment(clean_env, tmp_path):
    clean_env.setenv("CATALOG_PORT", "8080")
    clean_env.setenv("CATALOG_ADMIN_TOKENS", "a, b,,c")
    clean_env.setenv("CATALOG_AUTH_URL", "https://auth.example/")
    clean_env.setenv("CATALOG_DATA_DIR", str(tmp_path))
    clean_env.setenv("CATALOG_LOG_LEVEL", "debug")

    config = ServerConfig.from_env(env_file=str(tmp_path / "missing.env"))

    assert config.port == 8080
    assert config.admin_tokens == ["a", "b", "c"]
    assert config.auth_url == "https://auth.example"
    assert config.log_level == "DEBUG"
    assert config.kv_path == tmp_path / "catalog.db"
    assert config.storage_path == tmp_path / "storage"


def test_reads_dotenv_file(clean_env, tmp_path):
    env_file = tmp_path / "catalog.env"
    env_file.write_text("CATALOG_STORAGE_PROVIDER=s3\nCATALOG_SIGNED_URL_TTL=60\n")

    config = ServerConfig.from_env(env_file=str(env_file))

    assert config.storage_provider == "s3"
    assert config.signed_url_ttl == 60


def test_bad_integer(clean_env, tmp_path):
    clean_env.setenv("CATALOG_PORT", "eighty")
    with pytest.raises(ConfigError):
        ServerConfig.from_env(env_file=str(tmp_path / "missing.env"))


def test_unknown_storage_provider():
    with pytest.raises(ConfigError):
        ServerConfig(storage_provider="ftp")
