# app/storage/s3_provider.py
"""
S3 storage adapter implementation using boto3.

Supports:
- AWS S3 (virtual-hosted URLs)
- S3-compatible services (MinIO, DigitalOcean Spaces, etc.) via endpoint_url (path-style URLs)
"""

import logging
import re
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from app.logging_config import log_storage_operation
from app.storage.base import ResolvedLocation, StorageAdapter, UploadRequest
from app.storage.exceptions import RemoteNotFound, UnresolvableURL
from app.utils.files import format_bytes

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def looks_like_s3_url(url: str, endpoint_url: Optional[str] = None) -> bool:
    """S3 URLs carry an S3 domain marker in the host, or live under the custom endpoint."""
    if not url:
        return False
    if endpoint_url and url.startswith(endpoint_url.rstrip("/") + "/"):
        return True
    host = urlparse(url).netloc.lower()
    return ".s3." in host or ".s3-" in host or "s3.amazonaws.com" in host


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code", "") in _NOT_FOUND_CODES


class S3StorageAdapter(StorageAdapter):
    """
    S3/S3-compatible storage adapter.

    Configuration:
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: credentials
    - S3_BUCKET: bucket name
    - S3_REGION: AWS region (default: us-east-1)
    - S3_ENDPOINT_URL: custom endpoint for S3-compatible services
    """

    def __init__(
        self,
        bucket: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_attempts: int = 2,
    ):
        if not bucket:
            raise ValueError("S3 bucket required. Set S3_BUCKET env var or pass bucket.")

        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

        # Bounded so a hung endpoint cannot stall the fallback chain
        config = Config(
            retries={"max_attempts": max_attempts, "mode": "standard"},
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
        )

        self._client = boto3.client(
            "s3",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=self._endpoint_url,
            region_name=self._region,
            config=config,
        )

        # Anchored on the bucket name: virtual-hosted first, then path-style
        escaped = re.escape(bucket)
        self._key_patterns = (
            re.compile(rf"^https?://{escaped}\.s3[.-][^/]*amazonaws\.com/(.+)$"),
            re.compile(rf"^https?://[^/]+/{escaped}/(.+)$"),
        )

        logger.info(f"S3 storage initialized: bucket={self._bucket}")

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    def put(self, upload: UploadRequest, path: str) -> str:
        """Upload with public-read ACL and return the object's public URL."""
        key = path.strip("/")

        with log_storage_operation(self.name, "put", key) as metrics:
            self._client.upload_fileobj(
                upload.stream(),
                self._bucket,
                key,
                ExtraArgs={
                    "ACL": "public-read",
                    "ContentType": upload.content_type,
                },
            )
            metrics["size_bytes"] = upload.size

        return self.url_of(key)

    def url_of(self, identifier: str) -> str:
        key = quote(identifier.lstrip("/"))
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def can_resolve(self, url: str) -> bool:
        return looks_like_s3_url(url, self._endpoint_url)

    def locate(self, url: str) -> ResolvedLocation:
        parsed = urlparse(url)
        bare = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
        for pattern in self._key_patterns:
            match = pattern.match(bare)
            if match:
                return ResolvedLocation(provider=self.name, identifier=unquote(match.group(1)))
        raise UnresolvableURL(f"Cannot extract S3 path from URL: {url}")

    def exists(self, location: ResolvedLocation) -> bool:
        """Check if object exists in S3."""
        try:
            self._client.head_object(Bucket=self._bucket, Key=location.identifier)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise

    def delete(self, location: ResolvedLocation) -> None:
        """Delete object from S3; an absent key raises RemoteNotFound."""
        key = location.identifier
        if not self.exists(location):
            raise RemoteNotFound(f"S3 object not found: {key}")

        with log_storage_operation(self.name, "delete", key):
            self._client.delete_object(Bucket=self._bucket, Key=key)
        logger.info(
            "File deleted from S3",
            extra={"event": "s3_delete", "provider": self.name, "key": key},
        )

    def stats(self) -> dict[str, Any]:
        file_count = 0
        total = 0
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket):
            for obj in page.get("Contents", []):
                file_count += 1
                total += obj.get("Size", 0)
        return {
            "file_count": file_count,
            "total_size": total,
            "total_size_formatted": format_bytes(total),
        }
