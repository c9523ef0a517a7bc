"""Tests for the S3 blob store with a mocked boto3 client."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from src.storage.blob_store import S3BlobStore, make_object_key


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "HeadBucket")


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://minio.local/bucket/key?X-Amz-Signature=x"
    return client


@pytest.fixture
def store(s3_client: MagicMock) -> S3BlobStore:
    return S3BlobStore(bucket="test-bucket", client=s3_client)


class TestObjectKey:
    def test_keeps_lowercased_extension(self) -> None:
        assert make_object_key("Photo.PNG").endswith(".png")

    def test_keys_are_unique(self) -> None:
        assert make_object_key("a.png") != make_object_key("a.png")

    def test_no_extension(self) -> None:
        key = make_object_key("README")
        assert len(key) == 32
        assert "." not in key


class TestS3BlobStore:
    @pytest.mark.asyncio
    async def test_put_returns_generated_key(self, store, s3_client) -> None:
        key = await store.put(b"data", "image/png", "photo.png")

        assert key.endswith(".png")
        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["Key"] == key
        assert kwargs["Body"] == b"data"
        assert kwargs["ContentType"] == "image/png"

    @pytest.mark.asyncio
    async def test_delete(self, store, s3_client) -> None:
        await store.delete("abc.png")
        s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="abc.png")

    @pytest.mark.asyncio
    async def test_url_for_presigns_with_ttl(self, store, s3_client) -> None:
        url = await store.url_for("abc.png", 86400)

        assert url.startswith("https://minio.local/")
        kwargs = s3_client.generate_presigned_url.call_args.kwargs
        assert kwargs["ClientMethod"] == "get_object"
        assert kwargs["Params"] == {"Bucket": "test-bucket", "Key": "abc.png"}
        assert kwargs["ExpiresIn"] == 86400

    @pytest.mark.asyncio
    async def test_ensure_bucket_existing(self, store, s3_client) -> None:
        await store.ensure_bucket()
        s3_client.create_bucket.assert_not_called()

    @pytest.mark.asyncio
    async def test_ensure_bucket_creates_missing(self, store, s3_client) -> None:
        s3_client.head_bucket.side_effect = _client_error("404")

        await store.ensure_bucket()

        s3_client.create_bucket.assert_called_once_with(Bucket="test-bucket")

    @pytest.mark.asyncio
    async def test_ensure_bucket_reraises_other_errors(self, store, s3_client) -> None:
        s3_client.head_bucket.side_effect = _client_error("403")

        with pytest.raises(ClientError):
            await store.ensure_bucket()

    @pytest.mark.asyncio
    async def test_health_check(self, store, s3_client) -> None:
        assert await store.health_check() is True
        s3_client.head_bucket.side_effect = _client_error("403")
        assert await store.health_check() is False
