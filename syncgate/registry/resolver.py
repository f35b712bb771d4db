"""
Resolve a requested provider source into a canonical ProviderReference.

Pure and stateless; safe to call from any thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .names import SEPARATOR, ProviderReference, parse_provider_name

LATEST_VERSION = "latest"


@dataclass(frozen=True)
class RequiredProvider:
    """One provider declared in config: bare name, optional source ("org" or "org/name"), version."""

    name: str
    source: Optional[str] = None
    version: str = LATEST_VERSION


def resolve_provider_source(source: Optional[str], fallback_name: str) -> ProviderReference:
    """
    - no source: fallback_name is its own source (default organization)
    - "org": organization only; becomes "org/<fallback_name>"
    - "org/name": used as-is
    Raises InvalidProviderReference; never retried or defaulted.
    """
    if not source:
        effective = fallback_name
    elif SEPARATOR not in source:
        effective = SEPARATOR.join([source, fallback_name])
    else:
        effective = source
    return parse_provider_name(effective)


def parse_provider_source(required: RequiredProvider) -> ProviderReference:
    return resolve_provider_source(required.source, required.name)
