"""
Stable facade: exception taxonomy only. No store, registry, or cli imports.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    ConfigError,
    IdentityUnavailable,
    IncompatibleVersion,
    InvalidProviderReference,
    MalformedVersion,
    QueryCancelled,
    RegistryLookupError,
    StatusUnavailable,
    StoreUnreachable,
    SyncGateError,
    UnparsableVersionOutput,
    UnsupportedStore,
    VersionCheckFailed,
)

# Do not add exports without updating __all__.
__all__ = [
    "ConfigError",
    "IdentityUnavailable",
    "IncompatibleVersion",
    "InvalidProviderReference",
    "MalformedVersion",
    "QueryCancelled",
    "RegistryLookupError",
    "StatusUnavailable",
    "StoreUnreachable",
    "SyncGateError",
    "UnparsableVersionOutput",
    "UnsupportedStore",
    "VersionCheckFailed",
]
