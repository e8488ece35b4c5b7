# app/storage/factory.py
"""
Factory function for creating the storage gateway.
"""

import logging
from typing import Optional

from app.config import StorageConfig, get_settings
from app.storage.detector import build_resolver, detect_providers
from app.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)

# Global singleton instance
_storage_gateway: Optional[StorageGateway] = None


def create_storage_gateway(config: StorageConfig, default_quality: int = 90) -> StorageGateway:
    """Build a gateway from an explicit config (no environment access)."""
    adapters = detect_providers(config)
    resolver = build_resolver(config, adapters)
    return StorageGateway(adapters=adapters, resolver=resolver, default_quality=default_quality)


def get_storage_gateway() -> StorageGateway:
    """
    Get or create the storage gateway instance.

    Configuration is read once from settings; the adapter chain is fixed
    for the lifetime of the process.
    """
    global _storage_gateway

    if _storage_gateway is not None:
        return _storage_gateway

    settings = get_settings()
    _storage_gateway = create_storage_gateway(
        StorageConfig.from_settings(settings),
        default_quality=settings.IMAGE_DEFAULT_QUALITY,
    )
    logger.info(f"Storage gateway initialized: {', '.join(_storage_gateway.available_providers)}")
    return _storage_gateway


def set_storage_gateway(gateway: StorageGateway) -> None:
    """
    Set a custom storage gateway (useful for testing).
    """
    global _storage_gateway
    _storage_gateway = gateway


def reset_storage_gateway() -> None:
    """
    Reset the storage gateway singleton (for testing).
    """
    global _storage_gateway
    _storage_gateway = None
