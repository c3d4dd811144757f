"""
Storage service for case attachments: S3 or local disk.
"""
import os
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from dental_lab.core.config import settings
from dental_lab.core.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when the storage backend rejects an operation."""


class StorageService:
    """Stores objects by key in S3 when enabled, otherwise under ``UPLOAD_DIR``."""

    def __init__(
        self,
        use_s3: bool = settings.USE_S3,
        bucket: str = settings.S3_BUCKET,
        upload_dir: str = settings.UPLOAD_DIR,
        s3_client=None,
    ):
        self.use_s3 = use_s3
        self.bucket = bucket
        self.upload_dir = Path(upload_dir)
        self.s3_client = s3_client

        if self.use_s3 and self.s3_client is None:
            self._init_s3_client()

    def _init_s3_client(self):
        """Initialize S3 client."""
        self.s3_client = boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )

    @property
    def backend(self) -> str:
        return "s3" if self.use_s3 else "local"

    def _local_path(self, key: str) -> Path:
        path = (self.upload_dir / key).resolve()
        if self.upload_dir.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def upload(self, key: str, content: bytes, content_type: str) -> str:
        """Store ``content`` under ``key`` and return the key."""
        if self.use_s3:
            try:
                self.s3_client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=content,
                    ContentType=content_type
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Failed to upload {key} to S3: {e}")
                raise StorageError(str(e)) from e
            logger.info(f"File saved to S3: {key}")
            return key

        path = self._local_path(key)
        os.makedirs(path.parent, exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        logger.info(f"File saved locally: {path}")
        return key

    def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Time-limited download URL (a file path for local storage)."""
        expires_in = expires_in or settings.SIGNED_URL_EXPIRE_SECONDS
        if self.use_s3:
            try:
                return self.s3_client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": key},
                    ExpiresIn=expires_in
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Failed to sign URL for {key}: {e}")
                raise StorageError(str(e)) from e
        return f"/uploads/{key}"

    def delete(self, key: str) -> bool:
        """Delete an object; missing objects are not an error."""
        if self.use_s3:
            try:
                self.s3_client.delete_object(Bucket=self.bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Failed to delete S3 object {key}: {e}")
                return False
            logger.info(f"File deleted from S3: {key}")
            return True

        path = self._local_path(key)
        if path.exists():
            path.unlink()
            logger.info(f"File deleted locally: {path}")
            return True
        return False
