# app/storage/detector.py
"""
Capability detection: which storage adapters this deployment can use.

Evaluated once from an injected StorageConfig. Preference order is fixed:
s3 > cdn > local, and local is always the last resort.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from app.config import StorageConfig
from app.storage.base import StorageAdapter
from app.storage.cdn_provider import CloudinaryStorageAdapter, looks_like_cloudinary_url
from app.storage.exceptions import ProviderUnavailable
from app.storage.local_provider import LocalStorageAdapter, looks_like_local_url
from app.storage.resolver import ResolverRule, UrlResolver
from app.storage.s3_provider import S3StorageAdapter, looks_like_s3_url

logger = logging.getLogger(__name__)

DRIVER_ALIASES = {"cloudinary": "cdn"}


def _build_s3(config: StorageConfig) -> StorageAdapter:
    return S3StorageAdapter(
        bucket=config.s3_bucket,
        access_key_id=config.aws_access_key_id,
        secret_access_key=config.aws_secret_access_key,
        region=config.s3_region,
        endpoint_url=config.s3_endpoint_url,
        timeout_seconds=config.timeout_seconds,
        max_attempts=config.max_attempts,
    )


def _build_cdn(config: StorageConfig) -> StorageAdapter:
    return CloudinaryStorageAdapter(
        cloud_name=config.cloudinary_cloud_name,
        api_key=config.cloudinary_api_key,
        api_secret=config.cloudinary_api_secret,
        timeout_seconds=config.timeout_seconds,
    )


def _build_local(config: StorageConfig) -> StorageAdapter:
    return LocalStorageAdapter(base_path=config.local_storage_path, base_url=config.app_url)


@dataclass(frozen=True)
class ProviderDescriptor:
    """A storage provider: its name, availability check, URL predicate and constructor."""

    name: str
    is_available: Callable[[StorageConfig], bool]
    matches_url: Callable[[str, StorageConfig], bool]
    build: Callable[[StorageConfig], StorageAdapter]


PROVIDERS: tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        name="s3",
        is_available=lambda c: c.s3_configured,
        matches_url=lambda url, c: looks_like_s3_url(url, c.s3_endpoint_url),
        build=_build_s3,
    ),
    ProviderDescriptor(
        name="cdn",
        is_available=lambda c: c.cdn_configured,
        matches_url=lambda url, c: looks_like_cloudinary_url(url),
        build=_build_cdn,
    ),
    ProviderDescriptor(
        name="local",
        is_available=lambda c: True,
        matches_url=lambda url, c: looks_like_local_url(url, c.app_url),
        build=_build_local,
    ),
)

PROVIDER_NAMES = tuple(p.name for p in PROVIDERS)


def get_descriptor(name: str) -> ProviderDescriptor:
    name = DRIVER_ALIASES.get(name, name)
    for descriptor in PROVIDERS:
        if descriptor.name == name:
            return descriptor
    raise ValueError(f"Unknown storage provider: {name}. Available: {', '.join(PROVIDER_NAMES)}")


def detect_providers(config: StorageConfig) -> list[StorageAdapter]:
    """
    Build the ordered fallback chain.

    An explicit driver yields exactly that adapter. Otherwise every
    available remote adapter in preference order, then local.

    Raises:
        ValueError: unknown explicit driver
        ProviderUnavailable: explicit driver whose configuration is incomplete
    """
    driver = (config.driver or "auto").lower().strip()

    if driver != "auto":
        descriptor = get_descriptor(driver)
        if not descriptor.is_available(config):
            raise ProviderUnavailable(
                f"FILE_STORAGE_DRIVER={driver} but provider '{descriptor.name}' is not fully configured"
            )
        adapters = [descriptor.build(config)]
    else:
        adapters = [d.build(config) for d in PROVIDERS if d.name != "local" and d.is_available(config)]
        adapters.append(_build_local(config))

    names = [a.name for a in adapters]
    logger.info(
        f"Storage providers detected: {', '.join(names)}",
        extra={"event": "providers_detected", "providers": names, "driver": driver},
    )
    return adapters


def build_resolver(config: StorageConfig, adapters: list[StorageAdapter]) -> UrlResolver:
    """
    Resolver over every configured provider, not just the upload chain.

    URLs written before an explicit driver was set still resolve to the
    adapter that wrote them, as long as its credentials are present.
    """
    by_name = {a.name: a for a in adapters}
    for descriptor in PROVIDERS:
        if descriptor.name not in by_name and descriptor.is_available(config):
            by_name[descriptor.name] = descriptor.build(config)

    rules = [
        ResolverRule(name=d.name, matches=lambda url, d=d: d.matches_url(url, config))
        for d in PROVIDERS
    ]
    return UrlResolver(rules=rules, adapters=by_name)
