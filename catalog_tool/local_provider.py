"""
Local filesystem storage provider.
Implements the BlobStorageProvider interface on a directory tree.
"""

import logging
import os
import shutil
from typing import Optional, Dict, Any, List
from pathlib import Path

from shared.errors import StorageUploadFailed
from .storage_provider import BlobStorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(BlobStorageProvider):
    """
    Storage provider that uses the local filesystem.
    Useful for self-hosting and for tests. URLs are plain file:// paths,
    there is nothing to sign locally.
    """

    def __init__(self):
        self.base_path: Optional[Path] = None
        self.bucket_name: Optional[str] = None

    def authenticate(self, credentials: Dict[str, Any]) -> bool:
        """'Authenticate' by setting the base path."""
        path = credentials.get('base_path') or credentials.get('endpoint')
        if not path:
            return False

        self.base_path = Path(path).expanduser().absolute()
        self.base_path.mkdir(parents=True, exist_ok=True)
        return True

    def ensure_bucket(self, bucket_name: str) -> bool:
        """Create a subdirectory as a bucket."""
        if self.base_path is None:
            return False
        (self.base_path / bucket_name).mkdir(parents=True, exist_ok=True)
        self.bucket_name = bucket_name
        return True

    def _get_path(self, remote_key: str) -> Path:
        """Get absolute local path for a remote key."""
        if self.base_path is None or not self.bucket_name:
            raise ValueError("Bucket not set")

        bucket_root = (self.base_path / self.bucket_name).resolve()
        path = (bucket_root / remote_key).resolve()
        if bucket_root not in path.parents:
            raise ValueError(f"Key escapes bucket: {remote_key}")
        return path

    def upload_bytes(self, remote_key: str, data: bytes, content_type: str) -> None:
        try:
            dest_path = self._get_path(remote_key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(data)
        except (OSError, ValueError) as e:
            logger.error("Local upload error for %s: %s", remote_key, e)
            raise StorageUploadFailed(remote_key, str(e))

    def upload_file(self, local_path: str, remote_key: str, content_type: str) -> None:
        try:
            dest_path = self._get_path(remote_key)
            if Path(local_path).resolve() == dest_path:
                return
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, dest_path)
        except (OSError, ValueError) as e:
            logger.error("Local upload error for %s: %s", remote_key, e)
            raise StorageUploadFailed(remote_key, str(e))

    def get_file_url(self, remote_key: str, expires_in: int = 3600) -> str:
        try:
            return self._get_path(remote_key).as_uri()
        except ValueError as e:
            logger.error("URL generation failed for %s: %s", remote_key, e)
            return ""

    def file_exists(self, remote_key: str) -> bool:
        try:
            return self._get_path(remote_key).is_file()
        except ValueError:
            return False

    def delete_file(self, remote_key: str) -> bool:
        try:
            path = self._get_path(remote_key)
            if path.exists():
                os.remove(path)
            return True
        except (OSError, ValueError) as e:
            logger.error("Local delete error for %s: %s", remote_key, e)
            return False

    def list_files(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.base_path is None or not self.bucket_name:
            return []
        bucket_root = self.base_path / self.bucket_name
        if not bucket_root.exists():
            return []

        files = []
        for root, _, filenames in os.walk(bucket_root):
            for filename in filenames:
                full_path = Path(root) / filename
                key = full_path.relative_to(bucket_root).as_posix()
                if prefix and not key.startswith(prefix):
                    continue
                files.append({
                    'key': key,
                    'size': full_path.stat().st_size,
                })
        return sorted(files, key=lambda f: f['key'])
