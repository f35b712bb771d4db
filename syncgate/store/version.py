"""
Version parsing and comparison for store compatibility checks.

Versions compare as numeric tuples, left to right; missing trailing components
count as zero, so "10", "10.0" and "10.0.0" are equal. Pre-release and build
suffixes ("beta2", "-rc1", "+deb11") are kept for display but do not take part
in ordering.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Tuple, Union

from ..core.errors import MalformedVersion, UnparsableVersionOutput

_VERSION_RE = re.compile(
    r"^[vV]?(?P<core>\d+(?:\.\d+)*)"
    r"(?P<suffix>(?:-[0-9A-Za-z][0-9A-Za-z.\-~]*|[A-Za-z~][0-9A-Za-z.\-~]*)?(?:\+[0-9A-Za-z.\-~]+)?)$"
)


class Comparison(enum.Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


@dataclass(frozen=True, eq=False)
class Version:
    """Immutable numeric version. Equality and hashing ignore trailing zeros and suffix."""

    parts: Tuple[int, ...]
    suffix: str = ""

    def _key(self) -> Tuple[int, ...]:
        parts = list(self.parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is Comparison.LESS

    def __le__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is not Comparison.GREATER

    def __gt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is Comparison.GREATER

    def __ge__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is not Comparison.LESS

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts) + self.suffix


VersionLike = Union[Version, str]


def parse_version(text: str) -> Version:
    """
    Parse the leading whitespace-delimited token of text into a Version.
    "14.2 (Debian 14.2-1)" parses as 14.2. Raises MalformedVersion.
    """
    if text is None:
        raise MalformedVersion("empty version string")
    tokens = str(text).split()
    if not tokens:
        raise MalformedVersion("empty version string")
    m = _VERSION_RE.match(tokens[0])
    if m is None:
        raise MalformedVersion(f"malformed version: {text!r}")
    parts = tuple(int(p) for p in m.group("core").split("."))
    return Version(parts=parts, suffix=m.group("suffix") or "")


def version_from_banner(banner: str) -> Version:
    """
    Extract the version from a server banner shaped "<product> <version> ...",
    e.g. "PostgreSQL 14.2 on x86_64-pc-linux-gnu". Raises UnparsableVersionOutput
    when the banner has fewer than two fields, MalformedVersion when the second
    field is not a version.
    """
    fields = (banner or "").split()
    if len(fields) < 2:
        raise UnparsableVersionOutput(f"failed to parse version: {banner!r}")
    return parse_version(fields[1])


def _coerce(v: VersionLike) -> Version:
    return v if isinstance(v, Version) else parse_version(v)


def compare(got: VersionLike, want: VersionLike) -> Comparison:
    a = _coerce(got).parts
    b = _coerce(want).parts
    width = max(len(a), len(b))
    a = a + (0,) * (width - len(a))
    b = b + (0,) * (width - len(b))
    if a < b:
        return Comparison.LESS
    if a > b:
        return Comparison.GREATER
    return Comparison.EQUAL


def is_at_least(got: VersionLike, want: VersionLike) -> bool:
    """True if got >= want."""
    return compare(got, want) is not Comparison.LESS
