"""
Diagnostics: structured failure records collected across a run and reported together.
Advisory records are WARNING; anything that should fail the command is ERROR.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    summary: str
    subject: Optional[str] = None  # e.g. "store" or "cloudquery/aws"
    error_type: Optional[str] = None

    @classmethod
    def from_error(cls, exc: BaseException, *, subject: Optional[str] = None,
                   severity: Severity = Severity.ERROR) -> "Diagnostic":
        return cls(severity=severity, summary=str(exc), subject=subject, error_type=type(exc).__name__)

    def to_record(self) -> Dict[str, Optional[str]]:
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "subject": self.subject,
            "error_type": self.error_type,
        }


@dataclass
class Diagnostics:
    """Ordered collection; independent failures accumulate instead of aborting the run."""

    items: List[Diagnostic] = field(default_factory=list)

    def add(self, diag: Diagnostic) -> None:
        self.items.append(diag)

    def extend(self, diags: Iterable[Diagnostic]) -> None:
        self.items.extend(diags)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def errors(self) -> List[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.ERROR]

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.WARNING]

    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.items)

    def to_records(self) -> List[Dict[str, Optional[str]]]:
        return [d.to_record() for d in self.items]


def capture_diagnostics(diags: Diagnostics, tags: Mapping[str, str]) -> int:
    """Log every diagnostic with tags (e.g. {"command": "provider_sync"}). Returns count captured."""
    tag_str = " ".join(f"{k}={v}" for k, v in sorted(tags.items()))
    for d in diags:
        level = logging.ERROR if d.severity is Severity.ERROR else logging.WARNING
        logger.log(level, "[%s] %s: %s (%s)", tag_str, d.subject or "-", d.summary, d.error_type or "-")
    return len(diags)
