# app/storage/resolver.py
"""
Reverse resolution: stored URL -> (provider, native identifier).

Rules are checked in the detector's preference order and the first match
wins. A URL nobody claims is an error; it is never handed to local.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from app.storage.base import ResolvedLocation, StorageAdapter
from app.storage.exceptions import UnresolvableURL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolverRule:
    name: str
    matches: Callable[[str], bool]


class UrlResolver:
    def __init__(self, rules: list[ResolverRule], adapters: Mapping[str, StorageAdapter]):
        self._rules = list(rules)
        self._adapters = dict(adapters)

    def detect_provider(self, url: str) -> str:
        """Name of the first provider whose URL shape matches."""
        for rule in self._rules:
            if rule.matches(url):
                return rule.name
        raise UnresolvableURL(f"Cannot detect provider from URL: {url}")

    def adapter_for(self, name: str) -> StorageAdapter:
        adapter = self._adapters.get(name)
        if adapter is None:
            raise UnresolvableURL(f"URL belongs to provider '{name}', which is not configured")
        return adapter

    def resolve(self, url: str) -> tuple[StorageAdapter, ResolvedLocation]:
        """
        Raises:
            UnresolvableURL: no rule matches, the provider is not configured,
                or the identifier cannot be extracted
        """
        adapter = self.adapter_for(self.detect_provider(url))
        return adapter, adapter.locate(url)
