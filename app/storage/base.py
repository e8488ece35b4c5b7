# app/storage/base.py
"""
Storage adapter interface for user uploads.

Design principles:
- The returned URL is the only persisted state; there is no file table
- Every adapter can recognise its own URLs and recover the native identifier
- Adapters raise; the gateway decides what is fatal
- Remote calls are bounded by the configured timeout
"""

import io
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional


@dataclass
class UploadRequest:
    """An upload in flight: content source plus what the client told us about it."""

    file: BinaryIO
    filename: str
    content_type: str = "application/octet-stream"
    size: int = 0

    @classmethod
    def from_bytes(cls, content: bytes, filename: str, content_type: Optional[str] = None) -> "UploadRequest":
        return cls(
            file=io.BytesIO(content),
            filename=filename,
            content_type=content_type or guess_content_type(filename),
            size=len(content),
        )

    @classmethod
    def from_path(cls, path: str | Path, filename: Optional[str] = None,
                  content_type: Optional[str] = None) -> "UploadRequest":
        path = Path(path)
        name = filename or path.name
        return cls(
            file=path.open("rb"),
            filename=name,
            content_type=content_type or guess_content_type(name),
            size=path.stat().st_size,
        )

    @property
    def extension(self) -> str:
        """Extension of the client's filename, lowercase, without the dot."""
        return Path(self.filename).suffix.lstrip(".").lower()

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def stream(self) -> BinaryIO:
        """Return the content stream rewound to the start."""
        self.file.seek(0)
        return self.file

    def read(self) -> bytes:
        return self.stream().read()

    def close(self) -> None:
        self.file.close()


@dataclass(frozen=True)
class UploadOptions:
    """
    Per-call options for store/store_image.

    prefix/timestamp shape generated filenames; width/height/quality drive
    image processing and are ignored by plain store().
    """

    prefix: str = "file"
    timestamp: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[int] = None

    @property
    def wants_resize(self) -> bool:
        return bool(self.width or self.height)


@dataclass(frozen=True)
class ResolvedLocation:
    """Provider name plus the native identifier recovered from a URL."""

    provider: str
    identifier: str
    resource_type: Optional[str] = None


@dataclass(frozen=True)
class ProviderAttempt:
    """Outcome of one put() attempt in the fallback chain."""

    provider: str
    url: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


class StorageAdapter(ABC):
    """
    Abstract interface for one storage backend.

    Implementations must handle:
    - put: store content under a relative path, return an absolute URL
    - delete/exists: operate on a location recovered from that URL
    - can_resolve/locate: recognise their own URLs
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name ('s3', 'cdn', 'local')."""
        pass

    @abstractmethod
    def put(self, upload: UploadRequest, path: str) -> str:
        """
        Store upload content.

        Args:
            upload: Content and client metadata
            path: Relative path including filename (e.g. "avatars/avatar_1.jpg")

        Returns:
            Absolute, independently dereferenceable URL
        """
        pass

    @abstractmethod
    def delete(self, location: ResolvedLocation) -> None:
        """
        Delete the object at location.

        Raises:
            RemoteNotFound: if the object does not exist
        """
        pass

    @abstractmethod
    def exists(self, location: ResolvedLocation) -> bool:
        """Check if object exists."""
        pass

    @abstractmethod
    def url_of(self, identifier: str) -> str:
        """Public URL for a native identifier."""
        pass

    @abstractmethod
    def can_resolve(self, url: str) -> bool:
        """True when url has the shape of a URL this provider returns."""
        pass

    @abstractmethod
    def locate(self, url: str) -> ResolvedLocation:
        """
        Recover the native identifier from one of this provider's URLs.

        Raises:
            UnresolvableURL: if the identifier cannot be extracted
        """
        pass

    def stats(self) -> dict[str, Any]:
        """Usage statistics; providers without a cheap listing return a note."""
        return {"note": f"Statistics are not available for provider '{self.name}'"}
