"""S3-compatible object storage access (Cloudflare R2 in production).

Wraps a boto3 S3 client so the rest of the service only deals with keys,
presigned URLs and object sizes.
"""
import logging
from functools import lru_cache
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from uraan_chat.config import settings
from uraan_chat.core.errors import NotFound

logger = logging.getLogger(__name__)


class StorageGateway:
    """Presigning and metadata lookups for a single bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        url_ttl_seconds: int = 60,
        cdn_url: Optional[str] = None,
    ):
        self.client = client
        self.bucket = bucket
        self.url_ttl_seconds = url_ttl_seconds
        self.cdn_url = cdn_url.rstrip("/") if cdn_url else None

    def presign_put(self, key: str, content_type: str, size: int) -> str:
        """Signed URL allowing one PUT of `key` with the given content type."""
        return self.client.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ContentType": content_type,
                "ContentLength": size,
            },
            ExpiresIn=self.url_ttl_seconds,
        )

    def presign_get(self, key: str) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.url_ttl_seconds,
        )

    def public_url(self, key: str) -> str:
        """CDN URL when a CDN origin is configured, else a signed read URL."""
        if self.cdn_url:
            return f"{self.cdn_url}/{key}"
        return self.presign_get(key)

    def object_size(self, key: str) -> int:
        """
        Stored size of `key` in bytes.

        Raises:
            NotFound: If the object does not exist in the bucket
        """
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise NotFound("Uploaded object not found") from e
            raise
        return int(head["ContentLength"])

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)


@lru_cache
def get_storage_gateway() -> StorageGateway:
    """Build the gateway from settings once per process."""
    client = boto3.client(
        "s3",
        endpoint_url=settings.STORAGE_ENDPOINT_URL,
        aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
        region_name=settings.STORAGE_REGION,
        config=Config(signature_version="s3v4"),
    )
    logger.info(f"Storage gateway ready for bucket {settings.STORAGE_BUCKET}")
    return StorageGateway(
        client,
        bucket=settings.STORAGE_BUCKET,
        url_ttl_seconds=settings.UPLOAD_URL_TTL_SECONDS,
        cdn_url=settings.STORAGE_CDN_URL,
    )
