"""
Read-only store introspection: liveness, stable identifier, status summary, running version.

Every function borrows a pooled connection from a caller-owned SQLAlchemy Engine for
the duration of one query and releases it on every exit path. The engine itself is
never disposed here. Statements run on daemon worker threads; the caller polls its
cancel event while waiting and interrupts the driver call when it fires.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import (
    IdentityUnavailable,
    QueryCancelled,
    StoreUnreachable,
    UnsupportedStore,
    VersionCheckFailed,
)
from .version import Version, parse_version, version_from_banner

logger = logging.getLogger(__name__)

PING_TIMEOUT_S = 10.0
CANCEL_POLL_S = 0.05
ABORT_GRACE_S = 0.25


@dataclass(frozen=True)
class StoreStatus:
    """Human-readable summary of the running server. Diagnostic only."""

    version: str
    uptime_seconds: int
    full_version: str


UNKNOWN_STATUS = StoreStatus(version="unknown", uptime_seconds=0, full_version="unknown")


@dataclass(frozen=True)
class QuerySet:
    """SQL used to introspect one store dialect. identity_sql None means the dialect has no stable id."""

    dialect: str
    ping_sql: str
    identity_sql: Optional[str]
    status_sql: str
    banner_sql: str
    min_version: Version


POSTGRES_QUERIES = QuerySet(
    dialect="postgresql",
    ping_sql="SELECT 1",
    identity_sql="SELECT system_identifier::varchar AS id FROM pg_control_system()",
    status_sql=(
        "SELECT split_part(current_setting('server_version'), ' ', 1) AS version, "
        "EXTRACT(EPOCH FROM date_trunc('second', current_timestamp - pg_postmaster_start_time()))::bigint AS uptime, "
        "version() AS full_version"
    ),
    banner_sql="SELECT version()",
    min_version=parse_version("10.0"),
)

# 3.24 is the first release with UPSERT (ON CONFLICT ... DO UPDATE).
SQLITE_QUERIES = QuerySet(
    dialect="sqlite",
    ping_sql="SELECT 1",
    identity_sql=None,
    status_sql="SELECT sqlite_version() AS version, 0 AS uptime, 'SQLite ' || sqlite_version() AS full_version",
    banner_sql="SELECT 'SQLite ' || sqlite_version()",
    min_version=parse_version("3.24"),
)

_QUERY_SETS: Dict[str, QuerySet] = {
    POSTGRES_QUERIES.dialect: POSTGRES_QUERIES,
    SQLITE_QUERIES.dialect: SQLITE_QUERIES,
}


def queries_for(engine: Any) -> QuerySet:
    """Return the QuerySet for engine.dialect.name. Raises UnsupportedStore."""
    name = getattr(getattr(engine, "dialect", None), "name", None)
    qs = _QUERY_SETS.get(name)
    if qs is None:
        raise UnsupportedStore(f"no introspection queries for store dialect {name!r}. Supported: {sorted(_QUERY_SETS)}")
    return qs


def _raise_if_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise QueryCancelled("store query cancelled by caller")


class _QueryDeadline(Exception):
    pass


class _Lease:
    """Connection borrowed by a query worker, plus what the query produced."""

    def __init__(self) -> None:
        self.conn: Any = None
        self.value: Any = None
        self.error: Optional[BaseException] = None
        self.done = threading.Event()


def _abort(conn: Any) -> None:
    """Interrupt the statement running on conn; invalidate the lease if the driver cannot."""
    try:
        raw = conn.connection.driver_connection
        # psycopg2 exposes cancel(), sqlite3 interrupt()
        stop = getattr(raw, "cancel", None) or getattr(raw, "interrupt", None)
        if stop is not None:
            stop()
        else:
            conn.invalidate()
    except Exception as exc:
        logger.debug("Could not abort in-flight store query: %s", exc)


def _run_query(
    engine: Any,
    sql: str,
    read: Callable[[Any], Any],
    *,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
    name: str = "store-query",
) -> Any:
    """
    Run one statement on a daemon worker and wait for it in short slices.

    A set cancel event or an expired timeout aborts the driver call and raises
    QueryCancelled / _QueryDeadline without waiting for the statement to finish.
    Driver errors are re-raised in the caller's thread.
    """
    _raise_if_cancelled(cancel)
    lease = _Lease()

    def _work() -> None:
        try:
            with engine.connect() as conn:
                lease.conn = conn
                lease.value = read(conn.execute(text(sql)))
        except Exception as exc:
            lease.error = exc
        finally:
            lease.conn = None
            lease.done.set()

    threading.Thread(target=_work, name=name, daemon=True).start()
    deadline = None if timeout is None else time.monotonic() + timeout
    while not lease.done.wait(CANCEL_POLL_S):
        if cancel is not None and cancel.is_set():
            _stop_worker(lease)
            raise QueryCancelled("store query cancelled by caller")
        if deadline is not None and time.monotonic() >= deadline:
            _stop_worker(lease)
            raise _QueryDeadline()
    if lease.error is not None:
        raise lease.error
    _raise_if_cancelled(cancel)
    return lease.value


def _stop_worker(lease: _Lease) -> None:
    conn = lease.conn
    if conn is not None:
        _abort(conn)
    # An interrupted statement returns promptly and releases its lease.
    lease.done.wait(ABORT_GRACE_S)


def check_reachable(
    engine: Any,
    timeout: float = PING_TIMEOUT_S,
    *,
    queries: Optional[QuerySet] = None,
    cancel: Optional[threading.Event] = None,
) -> None:
    """
    Liveness check bounded by timeout seconds. Raises StoreUnreachable on timeout or
    driver error. The ping runs on a daemon worker, so a hung connect can neither
    block the caller past the deadline nor keep the process alive afterwards.
    """
    qs = queries or queries_for(engine)
    try:
        _run_query(
            engine, qs.ping_sql, lambda r: r.scalar_one(), cancel=cancel, timeout=timeout, name="store-ping"
        )
    except _QueryDeadline as exc:
        raise StoreUnreachable(f"store did not respond within {timeout:g}s") from exc
    except (SQLAlchemyError, OSError) as exc:
        raise StoreUnreachable(f"store unreachable: {exc}") from exc


def fetch_identity(
    engine: Any,
    *,
    queries: Optional[QuerySet] = None,
    cancel: Optional[threading.Event] = None,
) -> str:
    """Return the store's stable installation identifier. Raises IdentityUnavailable."""
    qs = queries or queries_for(engine)
    if qs.identity_sql is None:
        raise IdentityUnavailable(f"{qs.dialect} stores have no stable installation identifier")
    try:
        value = _run_query(engine, qs.identity_sql, lambda r: r.scalar_one(), cancel=cancel)
    except SQLAlchemyError as exc:
        raise IdentityUnavailable(f"error getting store identifier: {exc}") from exc
    if value is None or str(value) == "":
        raise IdentityUnavailable("store returned an empty identifier")
    return str(value)


def fetch_status(
    engine: Any,
    *,
    queries: Optional[QuerySet] = None,
    cancel: Optional[threading.Event] = None,
) -> StoreStatus:
    """Version, uptime and banner in one projection. Query errors degrade to UNKNOWN_STATUS."""
    qs = queries or queries_for(engine)
    try:
        row = _run_query(engine, qs.status_sql, lambda r: r.mappings().one(), cancel=cancel)
        return StoreStatus(
            version=str(row["version"]),
            uptime_seconds=int(row["uptime"] or 0),
            full_version=str(row["full_version"]),
        )
    except (SQLAlchemyError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Store status unavailable: %s", exc)
        return UNKNOWN_STATUS


def fetch_running_version(
    engine: Any,
    *,
    queries: Optional[QuerySet] = None,
    cancel: Optional[threading.Event] = None,
) -> Version:
    """
    Query the server banner and parse its version token.
    Raises MalformedVersion / UnparsableVersionOutput, or VersionCheckFailed on query error.
    """
    qs = queries or queries_for(engine)
    try:
        banner = _run_query(engine, qs.banner_sql, lambda r: r.scalar_one(), cancel=cancel)
    except SQLAlchemyError as exc:
        raise VersionCheckFailed(f"error getting store version: {exc}") from exc
    return version_from_banner(str(banner or ""))
