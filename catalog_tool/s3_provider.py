"""
S3-compatible storage provider implementation.

Works against any endpoint speaking the S3 API: AWS, Cloudflare R2, MinIO,
or the S3 gateway of the hosted backend platform.
"""

import logging
from typing import Optional, Dict, Any, List

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from shared.errors import StorageUploadFailed
from .storage_provider import BlobStorageProvider

logger = logging.getLogger(__name__)


class S3StorageProvider(BlobStorageProvider):
    """Blob storage on an S3-compatible service via the boto3 S3 client."""

    def __init__(self):
        self.s3_client = None
        self.bucket_name = None
        self.endpoint_url = None

    def authenticate(self, credentials: Dict[str, Any]) -> bool:
        """
        Authenticate with the S3 endpoint.

        Args:
            credentials: Must contain:
                - access_key_id: Access key ID
                - secret_access_key: Secret access key
                May contain:
                - endpoint: Endpoint URL (AWS default when missing)
                - region: Region name
                - bucket: Bucket name (can be set later)
        """
        if not credentials.get('access_key_id') or not credentials.get('secret_access_key'):
            logger.error("S3 authentication failed: access key id and secret are required")
            return False

        try:
            self.endpoint_url = credentials.get('endpoint') or None
            self.bucket_name = credentials.get('bucket')

            self.s3_client = boto3.client(
                's3',
                endpoint_url=self.endpoint_url,
                aws_access_key_id=credentials['access_key_id'],
                aws_secret_access_key=credentials['secret_access_key'],
                region_name=credentials.get('region') or 'auto',
            )

            if self.bucket_name:
                self.s3_client.head_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.list_buckets()
            return True

        except (ClientError, BotoCoreError) as e:
            logger.error("S3 authentication failed: %s", e)
            return False

    def ensure_bucket(self, bucket_name: str) -> bool:
        """Create the bucket (private) unless it already exists."""
        self.bucket_name = bucket_name
        try:
            self.s3_client.head_bucket(Bucket=bucket_name)
            return True
        except ClientError:
            pass

        try:
            self.s3_client.create_bucket(Bucket=bucket_name)
            logger.info("Bucket created: %s", bucket_name)
            return True
        except ClientError as e:
            logger.error("Failed to create bucket %s: %s", bucket_name, e)
            return False

    def upload_bytes(self, remote_key: str, data: bytes, content_type: str) -> None:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=remote_key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload failed for %s: %s", remote_key, e)
            raise StorageUploadFailed(remote_key, str(e))

    def upload_file(self, local_path: str, remote_key: str, content_type: str) -> None:
        try:
            self.s3_client.upload_file(
                local_path, self.bucket_name, remote_key,
                ExtraArgs={'ContentType': content_type},
            )
        except (ClientError, BotoCoreError, Boto3Error, OSError) as e:
            # the transfer manager wraps ClientError in S3UploadFailedError
            logger.error("Upload failed for %s: %s", remote_key, e)
            raise StorageUploadFailed(remote_key, str(e))

    def get_file_url(self, remote_key: str, expires_in: int = 3600) -> str:
        """Generate presigned URL for file access."""
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': remote_key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("URL generation failed for %s: %s", remote_key, e)
            return ""

    def file_exists(self, remote_key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=remote_key)
            return True
        except ClientError:
            return False

    def delete_file(self, remote_key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=remote_key)
            return True
        except ClientError as e:
            logger.error("Delete failed for %s: %s", remote_key, e)
            return False

    def list_files(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            kwargs = {'Bucket': self.bucket_name}
            if prefix:
                kwargs['Prefix'] = prefix

            files = []
            paginator = self.s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(**kwargs):
                for obj in page.get('Contents', []):
                    files.append({'key': obj['Key'], 'size': obj['Size']})
            return files

        except ClientError as e:
            logger.error("List files failed: %s", e)
            return []
