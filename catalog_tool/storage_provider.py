"""
Abstract base class for blob storage providers.

This module defines the interface the ingestion pipeline uploads covers and
songs through, so the catalog can run against S3-compatible object storage
(including the hosted platform's S3 gateway) or a local directory tree.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List


class BlobStorageProvider(ABC):
    """
    Abstract base class for blob storage providers.

    Upload methods raise StorageUploadFailed; lookups report failure through
    their return value.
    """

    bucket_name: Optional[str] = None

    @abstractmethod
    def authenticate(self, credentials: Dict[str, Any]) -> bool:
        """
        Authenticate with the storage provider.

        Args:
            credentials: Provider specific settings (endpoint, keys, base path)

        Returns:
            True if authentication successful, False otherwise
        """
        pass

    @abstractmethod
    def ensure_bucket(self, bucket_name: str) -> bool:
        """
        Select bucket_name, creating it when it does not exist yet.

        Returns:
            True if the bucket is usable
        """
        pass

    @abstractmethod
    def upload_bytes(self, remote_key: str, data: bytes, content_type: str) -> None:
        """
        Store data under remote_key, replacing any existing object.

        Raises:
            StorageUploadFailed: If the provider rejects the write
        """
        pass

    @abstractmethod
    def upload_file(self, local_path: str, remote_key: str, content_type: str) -> None:
        """
        Store the contents of local_path under remote_key.

        Raises:
            StorageUploadFailed: If the file cannot be read or the write fails
        """
        pass

    @abstractmethod
    def get_file_url(self, remote_key: str, expires_in: int = 3600) -> str:
        """
        Get a time-limited URL for reading a stored object.

        Args:
            remote_key: Key (path) of file
            expires_in: Validity window in seconds

        Returns:
            URL string, or "" if none could be generated
        """
        pass

    @abstractmethod
    def file_exists(self, remote_key: str) -> bool:
        pass

    @abstractmethod
    def delete_file(self, remote_key: str) -> bool:
        """
        Delete a stored object.

        Returns:
            True if deletion successful, False otherwise
        """
        pass

    @abstractmethod
    def list_files(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List stored objects.

        Returns:
            List of dictionaries with `key` and `size`
        """
        pass
