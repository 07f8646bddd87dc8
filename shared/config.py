"""
Server configuration.

Values come from the process environment, optionally seeded from a `.env`
file, so a bare local install runs with the defaults below.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_BUCKET,
    DEFAULT_DATA_DIR,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_PORT,
    KV_DB_FILENAME,
    SIGNED_URL_TTL,
    STORAGE_DIRNAME,
)
from shared.errors import ConfigError

ENV_PREFIX = "CATALOG_"
STORAGE_PROVIDERS = ("local", "s3")


def _env(name: str, default: str = "") -> str:
    return os.getenv(ENV_PREFIX + name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


@dataclass
class ServerConfig:
    """
    Runtime configuration for the API server and the ingestion pipeline.

    Attributes:
        host: Interface to bind
        port: Port to listen on
        data_dir: Root for the key-value database and local blob storage
        storage_provider: "local" or "s3"
        bucket: Bucket holding covers and songs
        s3_endpoint: S3-compatible endpoint URL (s3 provider only)
        auth_url: Base URL of the hosted identity service; empty for static tokens
        admin_tokens: Bearer tokens accepted when no identity service is set
        signed_url_ttl: Lifetime of retrieval URLs in seconds
    """
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    data_dir: str = DEFAULT_DATA_DIR
    storage_provider: str = "local"
    bucket: str = DEFAULT_BUCKET
    s3_endpoint: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_region: Optional[str] = None
    auth_url: str = ""
    auth_anon_key: str = ""
    admin_tokens: List[str] = field(default_factory=list)
    log_level: str = "INFO"
    signed_url_ttl: int = SIGNED_URL_TTL
    network_timeout: int = DEFAULT_NETWORK_TIMEOUT

    def __post_init__(self):
        if self.storage_provider not in STORAGE_PROVIDERS:
            raise ConfigError(
                f"Unknown storage provider: {self.storage_provider}",
                f"Use one of: {', '.join(STORAGE_PROVIDERS)}",
            )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def kv_path(self) -> Path:
        return self.data_path / KV_DB_FILENAME

    @property
    def storage_path(self) -> Path:
        return self.data_path / STORAGE_DIRNAME

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'ServerConfig':
        """
        Build configuration from `CATALOG_*` environment variables.

        Args:
            env_file: Optional .env file; the default lookup is used when None

        Returns:
            ServerConfig instance

        Raises:
            ConfigError: If a value cannot be parsed
        """
        load_dotenv(env_file)
        tokens = [t.strip() for t in _env("ADMIN_TOKENS").split(",") if t.strip()]
        return cls(
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", DEFAULT_PORT),
            data_dir=_env("DATA_DIR", DEFAULT_DATA_DIR),
            storage_provider=_env("STORAGE_PROVIDER", "local").lower(),
            bucket=_env("BUCKET", DEFAULT_BUCKET),
            s3_endpoint=_env("S3_ENDPOINT") or None,
            s3_access_key_id=_env("S3_ACCESS_KEY_ID") or None,
            s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY") or None,
            s3_region=_env("S3_REGION") or None,
            auth_url=_env("AUTH_URL").rstrip("/"),
            auth_anon_key=_env("AUTH_ANON_KEY"),
            admin_tokens=tokens,
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            signed_url_ttl=_env_int("SIGNED_URL_TTL", SIGNED_URL_TTL),
            network_timeout=_env_int("NETWORK_TIMEOUT", DEFAULT_NETWORK_TIMEOUT),
        )
