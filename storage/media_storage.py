"""S3 storage for media file bytes."""
import logging
import uuid

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class S3MediaStorage:
    """Stores uploaded media bytes in an S3 bucket."""

    def __init__(self, bucket_name: str, prefix: str = 'media/', s3_client=None):
        """
        Initialize S3 client.

        Args:
            bucket_name: Name of the S3 bucket
            prefix: Key prefix for stored objects
            s3_client: Optional boto3 S3 client
        """
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.s3 = s3_client or boto3.client('s3')

    def put(self, filename: str, data: bytes, mime_type: str) -> str:
        """
        Upload media bytes.

        Keys get a random segment so re-imported files with the same
        filename never overwrite each other.

        Args:
            filename: File name, e.g. "wp-event-123.jpg"
            data: File contents
            mime_type: Content type to store with the object

        Returns:
            Object key of the stored file
        """
        key = f"{self.prefix}{uuid.uuid4().hex[:12]}/{filename}"
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=mime_type
            )
        except ClientError as e:
            logger.error(f"Error uploading {key} to {self.bucket_name}: {e}")
            raise

        logger.info(f"Stored {len(data)} bytes at s3://{self.bucket_name}/{key}")
        return key

    def delete(self, key: str) -> None:
        """Remove a stored object, e.g. one whose media document was never created."""
        try:
            self.s3.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            logger.error(f"Error deleting {key} from {self.bucket_name}: {e}")
            raise

        logger.info(f"Deleted s3://{self.bucket_name}/{key}")
