"""Diagnostics collection and capture with command tags."""

from __future__ import annotations

import logging

from syncgate.core.errors import IdentityUnavailable, StoreUnreachable
from syncgate.diagnostics import Diagnostic, Diagnostics, Severity, capture_diagnostics


def test_collects_independent_failures():
    diags = Diagnostics()
    diags.add(Diagnostic.from_error(IdentityUnavailable("no id"), subject="store", severity=Severity.WARNING))
    assert not diags.has_errors()
    diags.extend([
        Diagnostic.from_error(StoreUnreachable("down"), subject="store"),
        Diagnostic(severity=Severity.ERROR, summary="bad ref", subject="aws"),
    ])
    assert len(diags) == 3
    assert diags.has_errors()
    assert [d.subject for d in diags.errors()] == ["store", "aws"]
    assert len(diags.warnings()) == 1


def test_to_records():
    d = Diagnostic.from_error(StoreUnreachable("down"), subject="store")
    assert d.to_record() == {
        "severity": "ERROR",
        "summary": "down",
        "subject": "store",
        "error_type": "StoreUnreachable",
    }


def test_capture_logs_with_tags(caplog):
    diags = Diagnostics()
    diags.add(Diagnostic(severity=Severity.ERROR, summary="bad ref", subject="aws"))
    diags.add(Diagnostic(severity=Severity.WARNING, summary="no id", subject="store"))
    with caplog.at_level(logging.WARNING, logger="syncgate.diagnostics"):
        n = capture_diagnostics(diags, {"command": "provider_sync"})
    assert n == 2
    assert all("command=provider_sync" in r.getMessage() for r in caplog.records)
    assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.WARNING]
