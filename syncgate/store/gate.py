"""
Readiness gate: one pre-flight validation pass per target store.

Reachability and version compatibility are load-bearing and reported in
GateResult.error; identity and status are advisory and only ever degrade to
sentinels plus a warning. Nothing here raises for store-side failures.

States:
- NOT_STARTED -> UNREACHABLE (ping failed; nothing else queried)
- NOT_STARTED -> CONNECTED -> VERSION_CHECKED (success)
- CONNECTED -> INCOMPATIBLE_VERSION (reachable, too old or version unreadable)
- any -> CANCELLED (caller's cancel event fired)
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from ..core.errors import (
    IdentityUnavailable,
    IncompatibleVersion,
    QueryCancelled,
    StatusUnavailable,
    StoreUnreachable,
    SyncGateError,
    VersionCheckFailed,
)
from .introspect import (
    PING_TIMEOUT_S,
    UNKNOWN_STATUS,
    QuerySet,
    StoreStatus,
    check_reachable,
    fetch_identity,
    fetch_running_version,
    fetch_status,
    queries_for,
)
from .version import Version, is_at_least, parse_version

logger = logging.getLogger(__name__)


class GateState(enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    CONNECTED = "CONNECTED"
    VERSION_CHECKED = "VERSION_CHECKED"
    UNREACHABLE = "UNREACHABLE"
    INCOMPATIBLE_VERSION = "INCOMPATIBLE_VERSION"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class StoreIdentity:
    value: str
    present: bool

    @classmethod
    def absent(cls) -> "StoreIdentity":
        return cls(value="", present=False)


@dataclass(frozen=True)
class GateResult:
    """Immutable outcome of one validation pass."""

    state: GateState
    connected: bool
    version_ok: bool
    identity: StoreIdentity
    status: StoreStatus
    minimum_version: Version
    running_version: Optional[Version] = None
    error: Optional[SyncGateError] = None
    warnings: Tuple[SyncGateError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is GateState.VERSION_CHECKED

    @property
    def identity_error(self) -> Optional[SyncGateError]:
        for w in self.warnings:
            if isinstance(w, IdentityUnavailable):
                return w
        return None


class ReadinessGate:
    """
    Validates a caller-owned SQLAlchemy Engine.

    Usage:
        gate = ReadinessGate(engine)
        result = gate.validate()
        if not result.connected: ...        # cannot talk to store
        elif not result.version_ok: ...     # store too old; identity/status still usable
        ident = gate.identifier()           # cached, no query
    """

    def __init__(
        self,
        engine: Any,
        *,
        ping_timeout_s: float = PING_TIMEOUT_S,
        minimum_version: Optional[Union[Version, str]] = None,
        queries: Optional[QuerySet] = None,
    ) -> None:
        self._engine = engine
        self._queries = queries or queries_for(engine)
        self._ping_timeout_s = ping_timeout_s
        if minimum_version is None:
            self._minimum = self._queries.min_version
        elif isinstance(minimum_version, Version):
            self._minimum = minimum_version
        else:
            self._minimum = parse_version(minimum_version)
        self._result: Optional[GateResult] = None

    @property
    def minimum_version(self) -> Version:
        return self._minimum

    @property
    def result(self) -> Optional[GateResult]:
        """Last validation result, or None before the first pass."""
        return self._result

    def identifier(self) -> StoreIdentity:
        r = self._result
        return r.identity if r is not None else StoreIdentity.absent()

    def info(self) -> StoreStatus:
        r = self._result
        return r.status if r is not None else UNKNOWN_STATUS

    def validate(self, cancel: Optional[threading.Event] = None) -> GateResult:
        """Run the full pass; every call re-executes all queries and replaces the cached result."""
        result = self._run(cancel)
        self._result = result
        logger.info(
            "Store gate %s (connected=%s version_ok=%s)",
            result.state.value, result.connected, result.version_ok,
        )
        return result

    def _finish(
        self,
        state: GateState,
        *,
        connected: bool,
        version_ok: bool = False,
        identity: Optional[StoreIdentity] = None,
        status: StoreStatus = UNKNOWN_STATUS,
        running: Optional[Version] = None,
        error: Optional[SyncGateError] = None,
        warnings: Tuple[SyncGateError, ...] = (),
    ) -> GateResult:
        return GateResult(
            state=state,
            connected=connected,
            version_ok=version_ok,
            identity=identity or StoreIdentity.absent(),
            status=status,
            minimum_version=self._minimum,
            running_version=running,
            error=error,
            warnings=warnings,
        )

    def _run(self, cancel: Optional[threading.Event]) -> GateResult:
        qs = self._queries
        try:
            check_reachable(self._engine, self._ping_timeout_s, queries=qs, cancel=cancel)
        except StoreUnreachable as exc:
            return self._finish(GateState.UNREACHABLE, connected=False, error=exc)
        except QueryCancelled as exc:
            return self._finish(GateState.CANCELLED, connected=False, error=exc)
        logger.debug("Store reachable; state %s", GateState.CONNECTED.value)

        warnings = []
        identity = StoreIdentity.absent()
        status = UNKNOWN_STATUS
        try:
            identity = StoreIdentity(value=fetch_identity(self._engine, queries=qs, cancel=cancel), present=True)
        except IdentityUnavailable as exc:
            logger.warning("Store identifier unavailable: %s", exc)
            warnings.append(exc)
        except QueryCancelled as exc:
            return self._finish(GateState.CANCELLED, connected=True, error=exc, warnings=tuple(warnings))

        try:
            status = fetch_status(self._engine, queries=qs, cancel=cancel)
        except QueryCancelled as exc:
            return self._finish(
                GateState.CANCELLED, connected=True, identity=identity, error=exc, warnings=tuple(warnings)
            )
        if status is UNKNOWN_STATUS:
            warnings.append(StatusUnavailable("store status unavailable; reporting unknown"))

        try:
            running = fetch_running_version(self._engine, queries=qs, cancel=cancel)
        except VersionCheckFailed as exc:
            return self._finish(
                GateState.INCOMPATIBLE_VERSION,
                connected=True,
                identity=identity,
                status=status,
                error=exc,
                warnings=tuple(warnings),
            )
        except QueryCancelled as exc:
            return self._finish(
                GateState.CANCELLED, connected=True, identity=identity, status=status,
                error=exc, warnings=tuple(warnings),
            )

        if not is_at_least(running, self._minimum):
            return self._finish(
                GateState.INCOMPATIBLE_VERSION,
                connected=True,
                identity=identity,
                status=status,
                running=running,
                error=IncompatibleVersion(running, self._minimum),
                warnings=tuple(warnings),
            )
        return self._finish(
            GateState.VERSION_CHECKED,
            connected=True,
            version_ok=True,
            identity=identity,
            status=status,
            running=running,
            warnings=tuple(warnings),
        )
