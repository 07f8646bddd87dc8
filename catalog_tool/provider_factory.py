"""
Factory for creating storage provider instances.

Simplifies provider selection and initialization.
"""

from shared.config import ServerConfig
from shared.errors import ConfigError
from .storage_provider import BlobStorageProvider
from .local_provider import LocalStorageProvider
from .s3_provider import S3StorageProvider


class StorageProviderFactory:
    """Factory for creating storage provider instances."""

    @staticmethod
    def create(provider_type: str) -> BlobStorageProvider:
        """
        Create an unauthenticated storage provider instance.

        Args:
            provider_type: "local" or "s3"

        Raises:
            ConfigError: If provider type is not supported
        """
        if provider_type == "local":
            return LocalStorageProvider()
        elif provider_type == "s3":
            return S3StorageProvider()
        raise ConfigError(f"Unknown provider type: {provider_type}")

    @staticmethod
    def from_config(config: ServerConfig) -> BlobStorageProvider:
        """
        Create, authenticate and select the bucket for the configured provider.

        Raises:
            ConfigError: If authentication fails or the bucket is unusable
        """
        provider = StorageProviderFactory.create(config.storage_provider)

        if config.storage_provider == "local":
            creds = {'base_path': str(config.storage_path)}
        else:
            creds = {
                'endpoint': config.s3_endpoint,
                'access_key_id': config.s3_access_key_id,
                'secret_access_key': config.s3_secret_access_key,
                'region': config.s3_region,
            }

        if not provider.authenticate(creds):
            raise ConfigError(
                f"Failed to authenticate {config.storage_provider} storage provider",
                "Check the CATALOG_S3_* settings",
            )
        if not provider.ensure_bucket(config.bucket):
            raise ConfigError(f"Bucket {config.bucket} is not available")
        return provider
