"""
Store: readiness gate, read-only introspection, version comparison, engine lifecycle.
No provider or registry logic.
"""

from __future__ import annotations

from .gate import GateResult, GateState, ReadinessGate, StoreIdentity
from .introspect import UNKNOWN_STATUS, StoreStatus
from .session import create_store_engine, engine_options, store_engine
from .version import Comparison, Version, compare, is_at_least, parse_version

__all__ = [
    "Comparison",
    "GateResult",
    "GateState",
    "ReadinessGate",
    "StoreIdentity",
    "StoreStatus",
    "UNKNOWN_STATUS",
    "Version",
    "compare",
    "create_store_engine",
    "engine_options",
    "is_at_least",
    "parse_version",
    "store_engine",
]
