# app/storage/gateway.py
"""
Storage gateway: the only entry point collaborators use.

    url = gateway.store(upload, "resources/", UploadOptions(prefix="resource"))
    url = gateway.store_image(upload, "avatars/", UploadOptions(width=300, height=300))
    gateway.delete(old_url)   # never raises
    gateway.exists(url)       # never raises

store() folds over the fallback chain; delete()/exists() resolve the URL
to the single adapter that wrote it.
"""

import logging
import posixpath
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from app.storage.base import (
    ProviderAttempt,
    ResolvedLocation,
    StorageAdapter,
    UploadOptions,
    UploadRequest,
)
from app.storage.exceptions import (
    ImageProcessingError,
    RemoteNotFound,
    UnresolvableURL,
    UploadFailed,
)
from app.storage.image_processor import DEFAULT_QUALITY, processed_upload
from app.storage.local_provider import STORAGE_MARKER, LocalStorageAdapter
from app.storage.resolver import UrlResolver
from app.utils.files import extension_for_mime

logger = logging.getLogger(__name__)


def generate_unique_filename(upload: UploadRequest, options: Optional[UploadOptions] = None) -> str:
    """prefix_timestamp_uuid.ext; extension from the client filename, else the MIME type."""
    options = options or UploadOptions()
    timestamp = options.timestamp if options.timestamp is not None else int(time.time())
    extension = upload.extension or extension_for_mime(upload.content_type)
    return f"{options.prefix}_{timestamp}_{uuid.uuid4()}.{extension}"


def is_legacy_path(value: str) -> bool:
    """Pre-migration references are bare relative paths such as 'avatars/old.jpg'."""
    return "://" not in value and STORAGE_MARKER not in value


class StorageGateway:
    def __init__(
        self,
        adapters: list[StorageAdapter],
        resolver: UrlResolver,
        default_quality: int = DEFAULT_QUALITY,
    ):
        if not adapters:
            raise ValueError("StorageGateway requires at least one adapter")
        self._adapters = tuple(adapters)
        self._resolver = resolver
        self._default_quality = default_quality

    @property
    def available_providers(self) -> list[str]:
        return [a.name for a in self._adapters]

    # -------------------------------------------------------------------------
    # Store
    # -------------------------------------------------------------------------

    def resolve_target_path(self, upload: UploadRequest, path: str,
                            options: Optional[UploadOptions] = None) -> str:
        """A path without an extension is a directory: append a generated filename."""
        if not path.endswith("/") and posixpath.splitext(path)[1]:
            return path.strip("/")
        directory = path.strip("/")
        filename = generate_unique_filename(upload, options)
        return f"{directory}/{filename}" if directory else filename

    def _attempt(self, adapter: StorageAdapter, upload: UploadRequest, path: str) -> ProviderAttempt:
        try:
            return ProviderAttempt(provider=adapter.name, url=adapter.put(upload, path))
        except Exception as e:
            return ProviderAttempt(provider=adapter.name, error=e)

    def store(self, upload: UploadRequest, path: str, options: Optional[UploadOptions] = None) -> str:
        """
        Store upload, trying each provider in order.

        Args:
            upload: Content and client metadata
            path: Full relative path ("avatars/a.jpg") or a directory ("resources/")
            options: prefix/timestamp for generated filenames

        Returns:
            Absolute URL from the first provider that succeeded

        Raises:
            UploadFailed: every provider failed
        """
        target = self.resolve_target_path(upload, path, options)
        attempts: list[ProviderAttempt] = []

        for adapter in self._adapters:
            attempt = self._attempt(adapter, upload, target)
            attempts.append(attempt)

            if attempt.ok:
                logger.info(
                    "File uploaded successfully",
                    extra={
                        "event": "upload_complete",
                        "provider": attempt.provider,
                        "url": attempt.url,
                        "size_bytes": upload.size,
                        "original_name": upload.filename,
                    },
                )
                return attempt.url

            logger.warning(
                f"Storage provider {attempt.provider} failed, trying next: {attempt.error}",
                extra={
                    "event": "provider_failed",
                    "provider": attempt.provider,
                    "error": str(attempt.error),
                    "original_name": upload.filename,
                },
            )

        raise UploadFailed("File upload failed on all available storage providers", attempts=attempts)

    def store_image(self, upload: UploadRequest, path: str, options: Optional[UploadOptions] = None) -> str:
        """
        Resize/transcode, then store. Without width or height this is store().

        Raises:
            UploadFailed: processing failed or every provider failed
        """
        options = options or UploadOptions()
        if not options.wants_resize:
            return self.store(upload, path, options)

        quality = options.quality if options.quality is not None else self._default_quality
        try:
            with processed_upload(upload, width=options.width, height=options.height, quality=quality) as processed:
                return self.store(processed, path, options)
        except ImageProcessingError as e:
            logger.error(
                f"Image upload failed: {e}",
                extra={"event": "image_processing_failed", "original_name": upload.filename, "error": str(e)},
            )
            raise UploadFailed(f"Image upload failed: {e}") from e

    # -------------------------------------------------------------------------
    # Delete / exists
    # -------------------------------------------------------------------------

    def _locate(self, url_or_path: str) -> tuple[StorageAdapter, ResolvedLocation]:
        if is_legacy_path(url_or_path):
            adapter = self._resolver.adapter_for("local")
            return adapter, ResolvedLocation(provider=adapter.name, identifier=url_or_path.strip("/"))
        return self._resolver.resolve(url_or_path)

    def delete(self, url_or_path: Optional[str]) -> bool:
        """
        Delete the file behind a stored reference. Never raises.

        Empty references and already-absent files count as deleted.
        """
        if not url_or_path:
            logger.info("Skipping deletion of empty URL", extra={"event": "delete_skipped"})
            return True

        try:
            adapter, location = self._locate(url_or_path)

            logger.info(
                "Attempting file deletion",
                extra={
                    "event": "delete_attempt",
                    "url": url_or_path,
                    "provider": location.provider,
                    "key": location.identifier,
                },
            )
            adapter.delete(location)
            return True

        except RemoteNotFound as e:
            logger.info(
                f"File already absent, treating as deleted: {e}",
                extra={"event": "delete_already_absent", "url": url_or_path},
            )
            return True
        except UnresolvableURL as e:
            logger.warning(
                f"Cannot delete unresolvable URL: {e}",
                extra={"event": "delete_unresolvable", "url": url_or_path, "error": str(e)},
            )
            return False
        except Exception as e:
            logger.error(
                f"File deletion failed: {e}",
                extra={"event": "delete_failed", "url": url_or_path, "error": str(e)},
                exc_info=True,
            )
            return False

    def exists(self, url: Optional[str]) -> bool:
        """Read-only existence check. Never raises."""
        if not url:
            return False

        try:
            adapter, location = self._locate(url)
            return adapter.exists(location)
        except Exception as e:
            logger.warning(
                f"File existence check failed: {e}",
                extra={"event": "exists_failed", "url": url, "error": str(e)},
            )
            return False

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def local_path_from_url(self, url: str) -> Optional[Path]:
        """Filesystem path for a local-storage URL, None for any other URL."""
        try:
            if self._resolver.detect_provider(url) != "local":
                return None
            adapter = self._resolver.adapter_for("local")
        except UnresolvableURL:
            return None
        if isinstance(adapter, LocalStorageAdapter):
            return adapter.path_for(url)
        return None

    def storage_stats(self) -> dict[str, Any]:
        """Per-provider usage for the providers in the chain."""
        stats: dict[str, Any] = {}
        for adapter in self._adapters:
            try:
                stats[adapter.name] = adapter.stats()
            except Exception as e:
                logger.warning(
                    f"Storage stats failed for {adapter.name}: {e}",
                    extra={"event": "stats_failed", "provider": adapter.name, "error": str(e)},
                )
                stats[adapter.name] = {"error": str(e)}
        return stats
