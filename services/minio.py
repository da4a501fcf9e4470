"""MinIO service for object storage operations."""
import os
from typing import BinaryIO, Dict, List, Optional, Any
from minio import Minio
from minio.error import S3Error
import logging

logger = logging.getLogger(__name__)


class MinIOService:
    """Service class for MinIO operations."""

    def __init__(self):
        """Initialize MinIO client."""
        self.client = Minio(
            endpoint=os.getenv("MINIO_ENDPOINT", "localhost:9000"),
            access_key=os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
            secret_key=os.getenv("MINIO_SECRET_KEY", "minioadmin"),
            secure=os.getenv("MINIO_SECURE", "false").lower() == "true"
        )

        self.default_bucket = os.getenv("MINIO_BUCKET", "finops-files")

    def ensure_default_bucket(self) -> None:
        """Create the default bucket, called once at application startup."""
        self._ensure_bucket_exists(self.default_bucket)

    def _ensure_bucket_exists(self, bucket_name: str) -> None:
        """Ensure the bucket exists, create if it doesn't."""
        try:
            if not self.client.bucket_exists(bucket_name):
                self.client.make_bucket(bucket_name)
                logger.info(f"Created bucket: {bucket_name}")
        except S3Error as e:
            logger.error(f"Error creating bucket {bucket_name}: {e}")
            raise

    def upload_file(
        self,
        file_data: BinaryIO,
        object_name: str,
        content_type: str,
        file_size: int,
        bucket_name: Optional[str] = None
    ) -> bool:
        """
        Upload a file to MinIO.

        Args:
            file_data: File binary data
            object_name: Name to store the object as
            content_type: MIME type of the file
            file_size: Size of the file in bytes
            bucket_name: Optional bucket name (defaults to self.default_bucket)

        Returns:
            bool: True if successful, False otherwise
        """
        bucket_name = bucket_name or self.default_bucket

        try:
            self._ensure_bucket_exists(bucket_name)

            self.client.put_object(
                bucket_name=bucket_name,
                object_name=object_name,
                data=file_data,
                length=file_size,
                content_type=content_type
            )
            logger.info(f"Successfully uploaded {object_name} to {bucket_name}")
            return True
        except S3Error as e:
            logger.error(f"Error uploading file {object_name}: {e}")
            return False

    def download_file(self, object_name: str, bucket_name: Optional[str] = None) -> Optional[bytes]:
        """
        Download a file from MinIO.

        Returns:
            bytes: File content if successful, None otherwise
        """
        bucket_name = bucket_name or self.default_bucket

        try:
            response = self.client.get_object(bucket_name, object_name)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            logger.error(f"Error downloading file {object_name}: {e}")
            return None

    def delete_file(self, object_name: str, bucket_name: Optional[str] = None) -> bool:
        """
        Delete a file from MinIO.

        Returns:
            bool: True if successful, False otherwise
        """
        bucket_name = bucket_name or self.default_bucket

        try:
            self.client.remove_object(bucket_name, object_name)
            logger.info(f"Successfully deleted {object_name} from {bucket_name}")
            return True
        except S3Error as e:
            logger.error(f"Error deleting file {object_name}: {e}")
            return False

    def list_files(self, bucket_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """List every object in the bucket with its size and upload time."""
        bucket_name = bucket_name or self.default_bucket

        try:
            return [
                {
                    "key": obj.object_name,
                    "size": obj.size,
                    "uploaded": obj.last_modified.isoformat() if obj.last_modified else None
                }
                for obj in self.client.list_objects(bucket_name, recursive=True)
            ]
        except S3Error as e:
            logger.error(f"Error listing files in {bucket_name}: {e}")
            return []


# Global instance
minio_service = MinIOService()


def get_storage() -> MinIOService:
    """Object storage dependency."""
    return minio_service
