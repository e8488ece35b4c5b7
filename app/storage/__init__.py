# app/storage/__init__.py
"""
Storage gateway for user uploads (avatars, event posters, event resources).

Files go to the first working provider (S3, Cloudinary, local disk) and
the returned URL is the only record of where they live. This module
provides store/delete/exists on top of that.
"""

from app.storage.base import (
    ProviderAttempt,
    ResolvedLocation,
    StorageAdapter,
    UploadOptions,
    UploadRequest,
)
from app.storage.cdn_provider import CloudinaryStorageAdapter, extract_public_id
from app.storage.exceptions import (
    ImageProcessingError,
    ProviderUnavailable,
    RemoteNotFound,
    StorageError,
    UnresolvableURL,
    UploadFailed,
)
from app.storage.factory import (
    create_storage_gateway,
    get_storage_gateway,
    reset_storage_gateway,
    set_storage_gateway,
)
from app.storage.gateway import StorageGateway
from app.storage.local_provider import LocalStorageAdapter
from app.storage.s3_provider import S3StorageAdapter

__all__ = [
    "StorageAdapter",
    "StorageGateway",
    "UploadRequest",
    "UploadOptions",
    "ResolvedLocation",
    "ProviderAttempt",
    "S3StorageAdapter",
    "CloudinaryStorageAdapter",
    "LocalStorageAdapter",
    "extract_public_id",
    "StorageError",
    "ProviderUnavailable",
    "UploadFailed",
    "UnresolvableURL",
    "RemoteNotFound",
    "ImageProcessingError",
    "create_storage_gateway",
    "get_storage_gateway",
    "set_storage_gateway",
    "reset_storage_gateway",
]
