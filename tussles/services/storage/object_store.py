"""
S3-compatible object store wrapper for order images.

Wraps a boto3 S3 client with structured logging and maps botocore failures
to UpstreamError. Calls are blocking; async callers run them in a thread.
"""

from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tussles.core.config import Settings
from tussles.core.errors import UpstreamError
from tussles.core.logging import get_logger

logger = get_logger(__name__)


class ObjectStore:
    """
    Object store bound to a single bucket.

    A store built without a client is degraded: every write raises
    UpstreamError instead of touching the network.
    """

    def __init__(
        self,
        bucket: str,
        client: Optional[Any] = None,
        public_base_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region_name: str = "us-east-1",
    ) -> None:
        self.bucket = bucket
        self._client = client
        self.public_base_url = public_base_url
        self.endpoint_url = endpoint_url
        self.region_name = region_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStore":
        """
        Build a store from application settings.

        Returns a degraded store when the storage credentials are missing.
        """
        client = None
        if settings.storage_configured:
            client = boto3.client(
                "s3",
                endpoint_url=settings.storage_endpoint_url,
                aws_access_key_id=settings.storage_access_key_id,
                aws_secret_access_key=settings.storage_secret_access_key,
                region_name=settings.storage_region,
            )
            logger.info(
                "Object store client initialized",
                bucket=settings.storage_bucket,
                endpoint=settings.storage_endpoint_url,
            )

        return cls(
            bucket=settings.storage_bucket,
            client=client,
            public_base_url=settings.storage_public_url,
            endpoint_url=settings.storage_endpoint_url,
            region_name=settings.storage_region,
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def public_url(self, key: str) -> str:
        """
        Build the public URL under which an object is readable.

        Args:
            key: Object key inside the bucket

        Returns:
            Absolute URL
        """
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{self.bucket}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region_name}.amazonaws.com/{key}"

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store an object and return its public URL.

        Args:
            key: Object key inside the bucket
            data: Object body
            content_type: MIME type recorded on the object

        Returns:
            Public URL of the stored object

        Raises:
            UpstreamError: If the store is unconfigured or the upload fails
        """
        if self._client is None:
            logger.error("Image upload attempted without object store credentials")
            raise UpstreamError("Object store is not configured", key=key)

        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Image upload failed",
                bucket=self.bucket,
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamError("Failed to upload image", key=key) from e

        logger.info(
            "Image uploaded",
            bucket=self.bucket,
            key=key,
            size_bytes=len(data),
            content_type=content_type,
        )
        return self.public_url(key)

    def delete(self, key: str) -> bool:
        """
        Remove an object, reporting rather than raising on failure.

        Returns:
            True if the delete call succeeded
        """
        if self._client is None:
            return False

        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(
                "Image cleanup failed",
                bucket=self.bucket,
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logger.info("Image removed", bucket=self.bucket, key=key)
        return True
