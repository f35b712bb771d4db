"""
Provider name parsing: "<org>/<name>" or a bare "<name>" under the default organization.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..core.errors import InvalidProviderReference

DEFAULT_ORGANIZATION = "cloudquery"
SEPARATOR = "/"

# Lowercase alphanumeric plus hyphen; must not start with a hyphen.
_IDENT_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


@dataclass(frozen=True)
class ProviderReference:
    """Canonical organization/name pair locating one provider plugin."""

    organization: str
    name: str

    def __str__(self) -> str:
        return f"{self.organization}{SEPARATOR}{self.name}"


def _check_ident(part: str, what: str, source: str) -> None:
    if not part:
        raise InvalidProviderReference(f"invalid provider reference {source!r}: empty {what}")
    if not _IDENT_RE.match(part):
        raise InvalidProviderReference(
            f"invalid provider reference {source!r}: {what} {part!r} must be lowercase letters, digits or '-'"
        )


def parse_provider_name(source: str) -> ProviderReference:
    """Split source on '/'; a bare name gets DEFAULT_ORGANIZATION. Raises InvalidProviderReference."""
    parts = (source or "").split(SEPARATOR)
    if len(parts) == 1:
        org, name = DEFAULT_ORGANIZATION, parts[0]
    elif len(parts) == 2:
        org, name = parts
    else:
        raise InvalidProviderReference(f"invalid provider reference {source!r}: more than one {SEPARATOR!r}")
    _check_ident(org, "organization", source)
    _check_ident(name, "name", source)
    return ProviderReference(organization=org, name=name)
