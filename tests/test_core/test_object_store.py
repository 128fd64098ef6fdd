"""
Tests for the S3-compatible object store wrapper.
"""

import pytest
from botocore.exceptions import ClientError

from tussles.core.errors import UpstreamError
from tussles.services.storage.object_store import ObjectStore


class TestObjectStore:
    def test_upload_returns_public_url(self, object_store, s3_client):
        url = object_store.upload("tussles/a.png", b"data", "image/png")

        s3_client.put_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="tussles/a.png",
            Body=b"data",
            ContentType="image/png",
        )
        assert url == "https://files.example.com/public/test-bucket/tussles/a.png"

    def test_upload_failure(self, object_store, s3_client):
        s3_client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        with pytest.raises(UpstreamError, match="Failed to upload image"):
            object_store.upload("tussles/a.png", b"data", "image/png")

    def test_unconfigured_upload(self):
        with pytest.raises(UpstreamError, match="not configured"):
            ObjectStore(bucket="b").upload("k", b"", "image/png")

    def test_delete(self, object_store, s3_client):
        assert object_store.delete("tussles/a.png") is True
        s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="tussles/a.png")

    def test_delete_failure_reported(self, object_store, s3_client):
        s3_client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "DeleteObject"
        )
        assert object_store.delete("tussles/a.png") is False

    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({"endpoint_url": "https://s3.example.com/"}, "https://s3.example.com/b/k.png"),
            ({}, "https://b.s3.us-east-1.amazonaws.com/k.png"),
        ],
    )
    def test_public_url_fallbacks(self, kwargs, expected):
        assert ObjectStore(bucket="b", **kwargs).public_url("k.png") == expected
