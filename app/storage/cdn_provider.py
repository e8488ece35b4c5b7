# app/storage/cdn_provider.py
"""
Cloudinary storage adapter.

Uploaded assets are addressed by public id (folder + filename stem). The
public id is never stored: it is recovered from the delivery URL, e.g.

    https://res.cloudinary.com/demo/image/upload/v1700000000/avatars/avatar_10_123.jpg
                                     ^^^^^               ^^^^^^^^^^^^^^^^^^^^^
                                     resource type       public id (+ extension)
"""

import logging
import posixpath
import re
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import NotFound

from app.logging_config import log_storage_operation
from app.storage.base import ResolvedLocation, StorageAdapter, UploadRequest
from app.storage.exceptions import RemoteNotFound, StorageError, UnresolvableURL

logger = logging.getLogger(__name__)

CDN_DOMAIN = "cloudinary.com"
UPLOAD_MARKER = "/upload/"

_VERSION_SEGMENT = re.compile(r"^v\d+$")
# One or more comma-separated "<param>_<value>" pairs, e.g. "c_fill,w_300,h_300"
_TRANSFORMATION_SEGMENT = re.compile(r"^[a-z]{1,3}_[^,/]+(?:,[a-z]{1,3}_[^,/]+)*$")
_RESOURCE_TYPE = re.compile(r"/(image|video|raw)/upload/")


def looks_like_cloudinary_url(url: str) -> bool:
    if not url:
        return False
    return CDN_DOMAIN in urlparse(url).netloc.lower()


def extract_resource_type(url: str) -> str:
    match = _RESOURCE_TYPE.search(urlparse(url).path)
    return match.group(1) if match else "image"


def extract_public_id(url: str) -> str:
    """
    Recover the public id from a Cloudinary delivery URL.

    Everything after /upload/, minus the optional version segment (and any
    transformation segments before it), minus the final extension.
    Raw assets keep their extension, it is part of their public id.

    Raises:
        UnresolvableURL: if the URL has no /upload/ section or no public id
    """
    path = unquote(urlparse(url).path)
    if UPLOAD_MARKER not in path:
        raise UnresolvableURL(f"Cannot extract public_id from Cloudinary URL: {url}")

    segments = [s for s in path.split(UPLOAD_MARKER, 1)[1].split("/") if s]

    version_index = next((i for i, s in enumerate(segments) if _VERSION_SEGMENT.match(s)), None)
    if version_index is not None:
        segments = segments[version_index + 1:]
    else:
        while len(segments) > 1 and _TRANSFORMATION_SEGMENT.match(segments[0]):
            segments.pop(0)

    if not segments:
        raise UnresolvableURL(f"Cannot extract public_id from Cloudinary URL: {url}")

    if extract_resource_type(url) != "raw":
        stem, dot, _ = segments[-1].rpartition(".")
        if dot and stem:
            segments[-1] = stem

    return "/".join(segments)


class CloudinaryStorageAdapter(StorageAdapter):
    """
    Cloudinary (CDN image service) adapter.

    Configuration:
    - CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout_seconds: float = 10.0,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary cloud name, API key and API secret are required")

        # Passed per call rather than through cloudinary.config() so that
        # several gateways (tests, CLI) can coexist in one process.
        self._auth = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        self._timeout = timeout_seconds

        logger.info(f"Cloudinary storage initialized: cloud={cloud_name}")

    @property
    def name(self) -> str:
        return "cdn"

    def put(self, upload: UploadRequest, path: str) -> str:
        """Upload to folder/public-id and return the secure URL."""
        path = path.strip("/")
        folder = posixpath.dirname(path)
        public_id = posixpath.splitext(posixpath.basename(path))[0]

        options: dict[str, Any] = {
            "public_id": public_id,
            "resource_type": "auto",
            "timeout": self._timeout,
            **self._auth,
        }
        if folder:
            options["folder"] = folder

        with log_storage_operation(self.name, "put", path) as metrics:
            result = cloudinary.uploader.upload(upload.stream(), **options)
            metrics["size_bytes"] = result.get("bytes", upload.size)

        return result["secure_url"]

    def url_of(self, identifier: str, resource_type: str = "image") -> str:
        url, _ = cloudinary.utils.cloudinary_url(
            identifier,
            resource_type=resource_type,
            secure=True,
            cloud_name=self._auth["cloud_name"],
        )
        return url

    def can_resolve(self, url: str) -> bool:
        return looks_like_cloudinary_url(url)

    def locate(self, url: str) -> ResolvedLocation:
        public_id = extract_public_id(url)
        logger.debug(
            "Cloudinary public ID extracted",
            extra={"event": "cdn_public_id", "url": url, "public_id": public_id},
        )
        return ResolvedLocation(
            provider=self.name,
            identifier=public_id,
            resource_type=extract_resource_type(url),
        )

    def exists(self, location: ResolvedLocation) -> bool:
        try:
            cloudinary.api.resource(
                location.identifier,
                resource_type=location.resource_type or "image",
                timeout=self._timeout,
                **self._auth,
            )
            return True
        except NotFound:
            return False

    def delete(self, location: ResolvedLocation) -> None:
        """
        Destroy the asset.

        The Admin API is asked first: an asset that is already gone (removed
        out-of-band, or not yet visible) raises RemoteNotFound.
        """
        public_id = location.identifier
        if not self.exists(location):
            raise RemoteNotFound(f"Cloudinary asset not found: {public_id}")

        with log_storage_operation(self.name, "delete", public_id):
            result = cloudinary.uploader.destroy(
                public_id,
                resource_type=location.resource_type or "image",
                timeout=self._timeout,
                **self._auth,
            )

        outcome: Optional[str] = result.get("result") if result else None
        if outcome == "not found":
            raise RemoteNotFound(f"Cloudinary asset not found: {public_id}")
        if outcome != "ok":
            raise StorageError(f"Cloudinary destroy returned {outcome!r} for {public_id}")

        logger.info(
            "File deleted from Cloudinary",
            extra={"event": "cdn_delete", "provider": self.name, "public_id": public_id},
        )
