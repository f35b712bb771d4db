"""
Shared exception types for syncgate.
Load-bearing failures abort a sync run; advisory ones are logged and replaced by sentinels.
"""

from __future__ import annotations


class SyncGateError(Exception):
    """Base exception for syncgate; catch this for any package-raised error."""

    pass


class ConfigError(SyncGateError):
    """Config file or environment value could not be interpreted."""


class UnsupportedStore(SyncGateError):
    """No introspection queries exist for this store dialect."""


class StoreUnreachable(SyncGateError):
    """Store did not answer the liveness ping in time, or the driver refused the connection."""


class QueryCancelled(SyncGateError):
    """Caller cancelled the pass while a store query was pending."""


class VersionCheckFailed(SyncGateError):
    """Running server version could not be determined."""


class MalformedVersion(VersionCheckFailed):
    """Version string is empty, has no numeric component, or is unrecognizable."""


class UnparsableVersionOutput(VersionCheckFailed):
    """Server version banner has fewer than two whitespace-delimited fields."""


class IncompatibleVersion(SyncGateError):
    """Store is reachable but older than the minimum supported version."""

    def __init__(self, got: object, want: object) -> None:
        super().__init__(f"unsupported store version: {got} (should be >= {want})")
        self.got = got
        self.want = want


class IdentityUnavailable(SyncGateError):
    """Advisory: stable store identifier could not be read."""


class StatusUnavailable(SyncGateError):
    """Advisory: version/uptime summary could not be read."""


class InvalidProviderReference(SyncGateError):
    """Provider reference does not resolve to an organization/name pair."""


class RegistryLookupError(SyncGateError):
    """Provider release could not be located in the registry."""


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
