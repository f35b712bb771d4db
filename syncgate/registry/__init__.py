"""
Registry: provider reference parsing/resolution and release lookup. Does not touch the store.
"""

from __future__ import annotations

from .hub import ProviderLocator, ProviderRelease
from .names import DEFAULT_ORGANIZATION, ProviderReference, parse_provider_name
from .resolver import RequiredProvider, parse_provider_source, resolve_provider_source

__all__ = [
    "DEFAULT_ORGANIZATION",
    "ProviderLocator",
    "ProviderReference",
    "ProviderRelease",
    "RequiredProvider",
    "parse_provider_name",
    "parse_provider_source",
    "resolve_provider_source",
]
