"""Tests for S3StorageAdapter against a moto-mocked bucket."""

import boto3
import pytest
from moto import mock_aws

from app.storage.base import ResolvedLocation, UploadRequest
from app.storage.exceptions import RemoteNotFound, UnresolvableURL
from app.storage.s3_provider import S3StorageAdapter, looks_like_s3_url

BUCKET = "gateway-uploads"


@pytest.fixture
def s3_adapter():
    """
    S3 adapter over a mocked bucket.

    Yields:
        S3StorageAdapter with the gateway-uploads bucket created.
    """
    with mock_aws():
        conn = boto3.client(
            "s3",
            region_name="us-east-1",
            aws_access_key_id="testing",
            aws_secret_access_key="testing",
        )
        conn.create_bucket(Bucket=BUCKET)

        yield S3StorageAdapter(
            bucket=BUCKET,
            access_key_id="testing",
            secret_access_key="testing",
            region="us-east-1",
        )


class TestS3Urls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://gateway-uploads.s3.us-east-1.amazonaws.com/avatars/a.jpg",
            "https://gateway-uploads.s3-eu-west-1.amazonaws.com/avatars/a.jpg",
            "https://s3.amazonaws.com/gateway-uploads/avatars/a.jpg",
        ],
    )
    def test_aws_urls_detected(self, url):
        assert looks_like_s3_url(url) is True

    def test_custom_endpoint_detected(self):
        assert looks_like_s3_url("http://minio:9000/gateway-uploads/a.jpg", "http://minio:9000/") is True

    @pytest.mark.parametrize(
        "url",
        [
            "https://res.cloudinary.com/demo/image/upload/a.jpg",
            "http://testserver/storage/a.jpg",
            "",
        ],
    )
    def test_other_urls_not_detected(self, url):
        assert looks_like_s3_url(url) is False

    def test_requires_bucket(self):
        with pytest.raises(ValueError, match="S3 bucket required"):
            S3StorageAdapter(bucket="")


class TestS3KeyExtraction:
    def setup_method(self):
        self.adapter = S3StorageAdapter(
            bucket=BUCKET,
            access_key_id="testing",
            secret_access_key="testing",
            region="eu-west-1",
        )

    def test_virtual_hosted(self):
        location = self.adapter.locate("https://gateway-uploads.s3.eu-west-1.amazonaws.com/avatars/a.jpg")
        assert location == ResolvedLocation(provider="s3", identifier="avatars/a.jpg")

    def test_path_style(self):
        location = self.adapter.locate("https://s3.eu-west-1.amazonaws.com/gateway-uploads/resources/doc.pdf")
        assert location.identifier == "resources/doc.pdf"

    def test_query_string_ignored_and_key_unquoted(self):
        location = self.adapter.locate(
            "https://gateway-uploads.s3.eu-west-1.amazonaws.com/resources/my%20doc.pdf?X-Amz-Expires=60"
        )
        assert location.identifier == "resources/my doc.pdf"

    def test_other_bucket_rejected(self):
        with pytest.raises(UnresolvableURL):
            self.adapter.locate("https://someone-else.s3.eu-west-1.amazonaws.com/avatars/a.jpg")

    def test_url_of_virtual_hosted(self):
        assert self.adapter.url_of("avatars/a.jpg") == "https://gateway-uploads.s3.eu-west-1.amazonaws.com/avatars/a.jpg"

    def test_url_of_custom_endpoint(self):
        adapter = S3StorageAdapter(
            bucket=BUCKET,
            access_key_id="testing",
            secret_access_key="testing",
            endpoint_url="http://minio:9000/",
        )
        url = adapter.url_of("avatars/a.jpg")

        assert url == "http://minio:9000/gateway-uploads/avatars/a.jpg"
        assert adapter.locate(url).identifier == "avatars/a.jpg"


class TestS3Operations:
    def test_put_exists_delete(self, s3_adapter):
        upload = UploadRequest.from_bytes(b"%PDF-1.4 test", "doc.pdf")

        url = s3_adapter.put(upload, "resources/doc.pdf")
        location = s3_adapter.locate(url)

        assert url == f"https://{BUCKET}.s3.us-east-1.amazonaws.com/resources/doc.pdf"
        assert s3_adapter.exists(location) is True

        s3_adapter.delete(location)

        assert s3_adapter.exists(location) is False

    def test_put_sets_content_type(self, s3_adapter):
        s3_adapter.put(UploadRequest.from_bytes(b"\x89PNG", "a.png"), "avatars/a.png")

        client = boto3.client(
            "s3",
            region_name="us-east-1",
            aws_access_key_id="testing",
            aws_secret_access_key="testing",
        )
        head = client.head_object(Bucket=BUCKET, Key="avatars/a.png")

        assert head["ContentType"] == "image/png"

    def test_delete_missing_raises_remote_not_found(self, s3_adapter):
        with pytest.raises(RemoteNotFound):
            s3_adapter.delete(ResolvedLocation(provider="s3", identifier="resources/missing.pdf"))

    def test_stats(self, s3_adapter):
        s3_adapter.put(UploadRequest.from_bytes(b"a" * 100, "a.txt"), "a.txt")
        s3_adapter.put(UploadRequest.from_bytes(b"b" * 400, "b.txt"), "docs/b.txt")

        stats = s3_adapter.stats()

        assert stats["file_count"] == 2
        assert stats["total_size"] == 500
        assert stats["total_size_formatted"] == "500 B"
