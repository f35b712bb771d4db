"""
Store introspection: each query is individually fallible; leases are released on every path.
Fake engine for PostgreSQL answers, in-memory SQLite via SQLAlchemy for the real query set.
"""

from __future__ import annotations

import sqlite3
import threading
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine

from syncgate.core.errors import (
    IdentityUnavailable,
    MalformedVersion,
    QueryCancelled,
    StoreUnreachable,
    UnparsableVersionOutput,
    UnsupportedStore,
    VersionCheckFailed,
)
from syncgate.store.introspect import (
    POSTGRES_QUERIES,
    SQLITE_QUERIES,
    UNKNOWN_STATUS,
    StoreStatus,
    check_reachable,
    fetch_identity,
    fetch_running_version,
    fetch_status,
    queries_for,
)
from tests.fakes.store import PG_BANNER, PG_IDENTITY, FakeEngine, db_error, hang


def test_queries_for_known_dialects():
    assert queries_for(FakeEngine()) is POSTGRES_QUERIES
    assert queries_for(create_engine("sqlite://")) is SQLITE_QUERIES


def test_queries_for_unknown_dialect_raises():
    with pytest.raises(UnsupportedStore):
        queries_for(SimpleNamespace(dialect=SimpleNamespace(name="oracle")))


def test_check_reachable_ok_releases_lease():
    engine = FakeEngine()
    check_reachable(engine, timeout=2.0)
    assert engine.calls["ping"] == 1
    assert engine.open_leases == 0


def test_check_reachable_connect_error():
    engine = FakeEngine(connect_error=db_error())
    with pytest.raises(StoreUnreachable, match="connection refused"):
        check_reachable(engine, timeout=2.0)


def test_check_reachable_times_out():
    engine = FakeEngine(ping=hang(1.0))
    with pytest.raises(StoreUnreachable, match="did not respond"):
        check_reachable(engine, timeout=0.05)


def test_check_reachable_timeout_interrupts_driver_call():
    engine = FakeEngine(ping=hang(3.0))
    with pytest.raises(StoreUnreachable, match="within 0.1s"):
        check_reachable(engine, timeout=0.1)
    assert engine.leases[0].driver.cancels == 1
    assert engine.open_leases == 0


def test_check_reachable_cancelled_before_ping():
    engine = FakeEngine()
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(QueryCancelled):
        check_reachable(engine, cancel=cancel)
    assert engine.connects == 0


def test_fetch_identity():
    engine = FakeEngine()
    assert fetch_identity(engine) == PG_IDENTITY
    assert engine.open_leases == 0


def test_fetch_identity_query_error_is_identity_unavailable():
    engine = FakeEngine(identity=db_error("permission denied for function pg_control_system"))
    with pytest.raises(IdentityUnavailable):
        fetch_identity(engine)
    assert engine.open_leases == 0


def test_fetch_identity_empty_value():
    with pytest.raises(IdentityUnavailable):
        fetch_identity(FakeEngine(identity=""))


def test_fetch_status():
    st = fetch_status(FakeEngine())
    assert st == StoreStatus(version="14.2", uptime_seconds=3600, full_version=PG_BANNER)


def test_fetch_status_error_returns_exact_sentinel():
    engine = FakeEngine(status=db_error("function pg_postmaster_start_time() does not exist"))
    st = fetch_status(engine)
    assert st == StoreStatus(version="unknown", uptime_seconds=0, full_version="unknown")
    assert st is UNKNOWN_STATUS
    assert engine.open_leases == 0


def test_fetch_running_version():
    v = fetch_running_version(FakeEngine(banner="PostgreSQL 9.6.24 on x86_64-pc-linux-gnu"))
    assert v.parts == (9, 6, 24)


def test_fetch_running_version_propagates_parse_errors():
    with pytest.raises(UnparsableVersionOutput):
        fetch_running_version(FakeEngine(banner="PostgreSQL"))
    with pytest.raises(MalformedVersion):
        fetch_running_version(FakeEngine(banner="PostgreSQL devel"))


def test_fetch_running_version_query_error():
    engine = FakeEngine(banner=db_error())
    with pytest.raises(VersionCheckFailed):
        fetch_running_version(engine)
    assert engine.open_leases == 0


def test_sqlite_query_set_against_real_engine():
    engine = create_engine("sqlite://")
    try:
        check_reachable(engine, timeout=5.0)
        st = fetch_status(engine)
        assert st.version == sqlite3.sqlite_version
        assert st.uptime_seconds == 0
        assert st.full_version == f"SQLite {sqlite3.sqlite_version}"
        v = fetch_running_version(engine)
        assert str(v) == sqlite3.sqlite_version
        with pytest.raises(IdentityUnavailable):
            fetch_identity(engine)
    finally:
        engine.dispose()


@pytest.mark.parametrize("fetch", [fetch_identity, fetch_status, fetch_running_version])
def test_cancel_during_query_is_not_degraded(fetch):
    engine = FakeEngine(identity=hang(3.0), status=hang(3.0), banner=hang(3.0))
    cancel = threading.Event()
    timer = threading.Timer(0.1, cancel.set)
    timer.start()
    try:
        with pytest.raises(QueryCancelled):
            fetch(engine, cancel=cancel)
    finally:
        timer.cancel()
    assert engine.leases[0].driver.cancels == 1
    assert engine.open_leases == 0
