"""
Blob store port and its S3-compatible implementation.

The engine never persists URLs: media rows keep an opaque storage key
and URLs are presigned on read. ``S3BlobStore`` talks to AWS S3 or a
MinIO deployment through boto3, pushing the blocking client calls onto
worker threads so the event loop is never stalled by object storage.
"""

import asyncio
import hashlib
import logging
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def make_object_key(filename: str) -> str:
    """
    Build a collision-resistant object key that keeps the file extension.

    >>> make_object_key("photo.png").endswith(".png")
    True
    """
    seed = f"{time.time_ns()}-{uuid.uuid4().hex}"
    digest = hashlib.md5(seed.encode("utf-8")).hexdigest()
    return digest + PurePosixPath(filename).suffix.lower()


class BlobStore(ABC):
    """Abstract upload/delete/URL-resolve of binary objects."""

    @abstractmethod
    async def put(self, data: bytes, mime_type: str, filename: str) -> str:
        """Store bytes and return the opaque storage key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the object stored under ``key``."""

    @abstractmethod
    async def url_for(self, key: str, ttl: int) -> str:
        """Return a URL for ``key`` valid for ``ttl`` seconds."""

    async def ensure_bucket(self) -> None:
        """Prepare the backing container; no-op unless overridden."""


def _create_client(settings: Settings, timeout: float) -> Any:
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": 2},
        ),
    )


class S3BlobStore(BlobStore):
    """
    S3 / MinIO blob store.

    Args:
        bucket: Bucket name (defaults to settings.s3_bucket)
        client: Pre-built boto3 S3 client (built from settings when None)
        timeout: Connect/read timeout for the boto3 client in seconds
    """

    def __init__(
        self,
        bucket: str | None = None,
        client: Any | None = None,
        timeout: float = 30.0,
    ) -> None:
        settings = get_settings()
        self._bucket = bucket or settings.s3_bucket
        self._create_bucket = settings.s3_create_bucket
        self._client = client or _create_client(settings, timeout)

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(self, data: bytes, mime_type: str, filename: str) -> str:
        key = make_object_key(filename)
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=mime_type,
        )
        logger.debug(f"Stored object {key} ({len(data)} bytes)")
        return key

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(
            self._client.delete_object,
            Bucket=self._bucket,
            Key=key,
        )
        logger.debug(f"Deleted object {key}")

    async def url_for(self, key: str, ttl: int) -> str:
        return await asyncio.to_thread(
            self._client.generate_presigned_url,
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=ttl,
        )

    async def ensure_bucket(self) -> None:
        """Create the bucket when it is missing and creation is enabled."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
            return
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code not in ("404", "NoSuchBucket", "NotFound"):
                raise

        if not self._create_bucket:
            raise RuntimeError(f"Bucket {self._bucket!r} does not exist")

        await asyncio.to_thread(self._client.create_bucket, Bucket=self._bucket)
        logger.info(f"Created bucket {self._bucket}")

    async def health_check(self) -> bool:
        """Check that the bucket is reachable."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Blob store health check failed: {e}")
            return False
