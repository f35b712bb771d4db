"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import syncgate; use syncgate.store, syncgate.registry, etc.
Does not import cli.
"""

from __future__ import annotations

from . import core, diagnostics, registry, store
from ._version import __version__

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "core",
    "diagnostics",
    "registry",
    "store",
]
