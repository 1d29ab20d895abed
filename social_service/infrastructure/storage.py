"""
Storage management for S3/MinIO
"""
import asyncio
import hashlib
import logging
from datetime import datetime
from uuid import uuid4
from io import BytesIO
from typing import BinaryIO, List, Optional

import boto3
from botocore.exceptions import ClientError

from ..config import settings
from ..domain.exceptions import MediaUploadError
from ..domain.models import MediaFile
from ..domain.repositories import IMediaUploader

logger = logging.getLogger(__name__)


def generate_unique_key(original_filename: str, prefix: str = "posts") -> str:
    """Generate a unique object key for storage"""
    timestamp = datetime.utcnow().isoformat()
    hash_input = f"{prefix}_{original_filename}_{timestamp}_{uuid4().hex}"
    file_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:16]

    ext = original_filename.rsplit('.', 1)[-1].lower() if '.' in original_filename else "bin"
    return f"{prefix}/{file_hash}.{ext}"


class StorageManager:
    """Manage file storage in S3/MinIO"""

    def __init__(self, client=None):
        """Initialize storage client"""
        if client is not None:
            self.client = client
        elif settings.STORAGE_TYPE == "minio":
            self.client = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or "minioadmin",
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or "minioadmin",
                region_name=settings.AWS_REGION
            )
        else:
            self.client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION
            )

        self.bucket_name = settings.S3_BUCKET_NAME

    def ensure_bucket_exists(self):
        """Create bucket if it doesn't exist"""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            logger.info(f"Bucket {self.bucket_name} exists")
        except ClientError:
            try:
                if settings.AWS_REGION == "us-east-1":
                    self.client.create_bucket(Bucket=self.bucket_name)
                else:
                    self.client.create_bucket(
                        Bucket=self.bucket_name,
                        CreateBucketConfiguration={'LocationConstraint': settings.AWS_REGION}
                    )
                logger.info(f"Created bucket {self.bucket_name}")
            except ClientError as e:
                logger.error(f"Failed to create bucket: {e}")

    def upload_file(
        self,
        file_data: BinaryIO,
        key: str,
        content_type: str = "image/jpeg",
        metadata: Optional[dict] = None
    ) -> bool:
        """
        Upload file to storage

        Args:
            file_data: File-like object
            key: Object key (path) in storage
            content_type: MIME type
            metadata: Optional metadata

        Returns:
            True if successful, False otherwise
        """
        try:
            extra_args = {
                'ContentType': content_type,
            }

            if metadata:
                extra_args['Metadata'] = metadata

            file_data.seek(0)
            self.client.upload_fileobj(
                file_data,
                self.bucket_name,
                key,
                ExtraArgs=extra_args
            )

            logger.info(f"Uploaded {key} to {self.bucket_name}")
            return True

        except ClientError as e:
            logger.error(f"Failed to upload {key}: {e}")
            return False


class S3MediaUploader(IMediaUploader):
    """Uploads post images to S3/MinIO and hands back public URLs"""

    def __init__(self, storage: StorageManager, base_url: Optional[str] = None):
        self.storage = storage
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def _upload_one(self, media: MediaFile) -> str:
        key = generate_unique_key(media.filename)
        success = self.storage.upload_file(
            BytesIO(media.data),
            key,
            content_type=media.content_type,
            metadata={"original_filename": media.filename}
        )
        if not success:
            raise MediaUploadError(f"Failed to upload {media.filename}")
        return f"{self.base_url}/{key}"

    async def upload_batch(self, files: List[MediaFile]) -> List[str]:
        """Upload every file concurrently; results keep the input order"""
        if not files:
            return []
        try:
            return list(await asyncio.gather(
                *(asyncio.to_thread(self._upload_one, media) for media in files)
            ))
        except MediaUploadError:
            raise
        except Exception as e:
            logger.error(f"Media batch upload failed: {e}")
            raise MediaUploadError() from e
