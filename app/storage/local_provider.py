# app/storage/local_provider.py
"""
Local filesystem storage adapter.

Writes under a public web root that the app serves at /storage, and
returns absolute URLs built from the configured base URL. Always the
last resort of the fallback chain.
"""

import logging
import shutil
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote, urlparse

from app.logging_config import log_storage_operation
from app.storage.base import ResolvedLocation, StorageAdapter, UploadRequest
from app.storage.exceptions import RemoteNotFound, UnresolvableURL
from app.utils.files import format_bytes

logger = logging.getLogger(__name__)

STORAGE_MARKER = "/storage/"


def looks_like_local_url(url: str, base_url: str) -> bool:
    """Local URLs embed the app's base URL or the /storage/ marker."""
    if not url:
        return False
    return STORAGE_MARKER in url or bool(base_url and url.startswith(base_url.rstrip("/") + "/"))


class LocalStorageAdapter(StorageAdapter):
    """
    Local filesystem storage adapter.

    Configuration:
    - LOCAL_STORAGE_PATH: public root directory (default: ./storage/public)
    - APP_URL: base URL the root is served under, at /storage
    """

    def __init__(self, base_path: str, base_url: str):
        """
        Initialize local storage.

        Args:
            base_path: Public root directory
            base_url: Absolute base URL with scheme (e.g. "https://app.example.com")
        """
        if not urlparse(base_url).scheme:
            raise ValueError(f"Local storage base URL must include a scheme: {base_url!r}")

        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._base_url = base_url.rstrip("/")

        logger.info(f"Local storage initialized: {self._base_path}")

    @property
    def name(self) -> str:
        return "local"

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_path(self, key: str) -> Path:
        """Get filesystem path for key, with path traversal protection."""
        resolved = (self._base_path / key).resolve()
        if not resolved.is_relative_to(self._base_path.resolve()):
            raise ValueError("Path traversal detected")
        return resolved

    def put(self, upload: UploadRequest, path: str) -> str:
        """Write upload content under the public root."""
        key = path.strip("/")
        file_path = self._get_path(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with log_storage_operation(self.name, "put", key) as metrics:
            with file_path.open("wb") as out:
                shutil.copyfileobj(upload.stream(), out)
            metrics["size_bytes"] = file_path.stat().st_size

        return self.url_of(key)

    def url_of(self, identifier: str) -> str:
        return f"{self._base_url}{STORAGE_MARKER}{quote(identifier.lstrip('/'))}"

    def can_resolve(self, url: str) -> bool:
        return looks_like_local_url(url, self._base_url)

    def locate(self, url: str) -> ResolvedLocation:
        """Strip the base URL or /storage/ prefix to recover the relative path."""
        prefix = f"{self._base_url}{STORAGE_MARKER}"
        if url.startswith(prefix):
            relative = url[len(prefix):]
        else:
            url_path = urlparse(url).path
            if STORAGE_MARKER in url_path:
                relative = url_path.split(STORAGE_MARKER, 1)[1]
            elif url.startswith(self._base_url + "/"):
                relative = urlparse(url[len(self._base_url):]).path
            else:
                raise UnresolvableURL(f"Cannot extract local path from URL: {url}")

        relative = unquote(relative.split("?", 1)[0].split("#", 1)[0]).strip("/")
        if not relative:
            raise UnresolvableURL(f"Cannot extract local path from URL: {url}")
        return ResolvedLocation(provider=self.name, identifier=relative)

    def path_for(self, url: str) -> Path | None:
        """Filesystem path behind a local URL, None for anything else."""
        if not self.can_resolve(url):
            return None
        try:
            return self._get_path(self.locate(url).identifier)
        except (UnresolvableURL, ValueError):
            return None

    def exists(self, location: ResolvedLocation) -> bool:
        return self._get_path(location.identifier).is_file()

    def delete(self, location: ResolvedLocation) -> None:
        file_path = self._get_path(location.identifier)
        if not file_path.is_file():
            raise RemoteNotFound(f"Local file not found: {location.identifier}")

        with log_storage_operation(self.name, "delete", location.identifier):
            file_path.unlink()
        logger.info(
            "File deleted from local storage",
            extra={"event": "local_delete", "provider": self.name, "path": location.identifier},
        )

    def stats(self) -> dict[str, Any]:
        sizes = [p.stat().st_size for p in self._base_path.rglob("*") if p.is_file()]
        total = sum(sizes)
        return {
            "file_count": len(sizes),
            "total_size": total,
            "total_size_formatted": format_bytes(total),
        }
