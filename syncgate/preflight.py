"""
Preflight: store readiness gate plus provider resolution before a sync run.
Run: python -m syncgate.preflight [providers...]
With gate_only=True only the store is checked; providers are neither resolved nor located.
Exit: 0 all OK, 2 config, 3 store not ready, 4 provider resolution/lookup.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .core.errors import (
    ConfigError,
    InvalidProviderReference,
    MalformedVersion,
    RegistryLookupError,
    UnsupportedStore,
)
from .diagnostics import Diagnostic, Diagnostics, Severity, capture_diagnostics
from .registry.hub import ProviderLocator, ProviderRelease
from .registry.names import ProviderReference
from .registry.resolver import RequiredProvider, parse_provider_source
from .store.gate import GateResult, ReadinessGate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_STORE = 3
EXIT_PROVIDERS = 4

STORE_SUBJECT = "store"


@dataclass(frozen=True)
class ResolvedProvider:
    required: RequiredProvider
    reference: ProviderReference
    release: Optional[ProviderRelease] = None


@dataclass
class PreflightReport:
    gate: Optional[GateResult]
    providers: List[ResolvedProvider] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def store_ready(self) -> bool:
        return self.gate is not None and self.gate.ok

    def exit_code(self) -> int:
        if not self.store_ready:
            return EXIT_STORE
        if self.diagnostics.has_errors():
            return EXIT_PROVIDERS
        return EXIT_OK


def gate_diagnostics(result: GateResult) -> Diagnostics:
    """Fatal gate error -> ERROR; advisory identity/status failures -> WARNING."""
    diags = Diagnostics()
    if result.error is not None:
        diags.add(Diagnostic.from_error(result.error, subject=STORE_SUBJECT))
    for w in result.warnings:
        diags.add(Diagnostic.from_error(w, subject=STORE_SUBJECT, severity=Severity.WARNING))
    return diags


def resolve_requested_providers(
    required: Sequence[RequiredProvider],
    requested: Sequence[str] = (),
) -> Tuple[List[ResolvedProvider], Diagnostics]:
    """
    Resolve each requested provider (all declared ones when none requested).
    A failure is recorded against that provider only; the rest still resolve.
    """
    diags = Diagnostics()
    by_name = {p.name: p for p in required}
    if requested:
        selected = []
        for name in requested:
            if name in by_name:
                selected.append(by_name[name])
            else:
                diags.add(Diagnostic(
                    severity=Severity.ERROR,
                    summary=f"provider {name!r} is not declared in config. Declared: {sorted(by_name)}",
                    subject=name,
                    error_type=InvalidProviderReference.__name__,
                ))
    else:
        selected = list(required)

    resolved: List[ResolvedProvider] = []
    for req in selected:
        try:
            ref = parse_provider_source(req)
        except InvalidProviderReference as exc:
            diags.add(Diagnostic.from_error(exc, subject=req.name))
            continue
        logger.debug("Resolved provider %s -> %s", req.name, ref)
        resolved.append(ResolvedProvider(required=req, reference=ref))
    return resolved, diags


def locate_releases(
    providers: Sequence[ResolvedProvider],
    locator: ProviderLocator,
) -> Tuple[List[ResolvedProvider], Diagnostics]:
    """Pin each provider's release; lookup failures are per provider."""
    diags = Diagnostics()
    out: List[ResolvedProvider] = []
    for p in providers:
        try:
            release = locator.locate(p.reference, p.required.version)
        except RegistryLookupError as exc:
            diags.add(Diagnostic.from_error(exc, subject=str(p.reference)))
            continue
        out.append(ResolvedProvider(required=p.required, reference=p.reference, release=release))
    return out, diags


def run_preflight(
    engine: Any,
    required: Sequence[RequiredProvider],
    requested: Sequence[str] = (),
    *,
    ping_timeout_s: Optional[float] = None,
    minimum_version: Optional[str] = None,
    locator: Optional[ProviderLocator] = None,
) -> PreflightReport:
    """Gate the store, then resolve providers. A store failure does not skip resolution."""
    kwargs = {"minimum_version": minimum_version}
    if ping_timeout_s is not None:
        kwargs["ping_timeout_s"] = ping_timeout_s
    gate = ReadinessGate(engine, **kwargs)
    result = gate.validate()
    report = PreflightReport(gate=result)
    report.diagnostics.extend(gate_diagnostics(result))

    providers, diags = resolve_requested_providers(required, requested)
    report.diagnostics.extend(diags)
    if locator is not None:
        providers, diags = locate_releases(providers, locator)
        report.diagnostics.extend(diags)
    report.providers = providers
    return report


def print_report(report: PreflightReport) -> None:
    g = report.gate
    if g is None:
        print("[FAIL] store  not checked")
    elif not g.connected:
        print(f"[FAIL] store unreachable: {g.error}")
    else:
        ident = g.identity.value if g.identity.present else "unavailable"
        print(f"[OK] store reachable  id={ident}  version={g.status.version}  uptime={g.status.uptime_seconds}s")
        if g.version_ok:
            print(f"[OK] version  {g.running_version} >= {g.minimum_version}")
        else:
            print(f"[FAIL] version  {g.error}")
    for p in report.providers:
        pinned = f"@{p.release.version}" if p.release is not None else ""
        print(f"[OK] provider  {p.required.name} -> {p.reference}{pinned}")
    for d in report.diagnostics:
        if d.subject == STORE_SUBJECT and d.severity is Severity.ERROR:
            continue
        tag = "FAIL" if d.severity is Severity.ERROR else "WARN"
        print(f"[{tag}] {d.subject or '-'}  {d.summary}")


def main(
    argv: Optional[List[str]] = None,
    *,
    locate: bool = False,
    gate_only: bool = False,
    tags: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Run preflight from config; argv is the requested provider names (unused when gate_only).
    tags go to the diagnostics sink.
    """
    from . import config
    from .store.session import store_engine

    requested = [] if gate_only else list(argv or [])
    try:
        cfg = config.get_config()
        dsn = config.store_dsn(cfg)
        timeout = config.ping_timeout_s(cfg)
        minimum = config.min_version(cfg)
        required = [] if gate_only else config.required_providers(cfg)
        locator = ProviderLocator(*config.registry_urls(cfg)) if locate and not gate_only else None
        with store_engine(dsn, connect_timeout_s=timeout) as engine:
            report = run_preflight(
                engine,
                required,
                requested,
                ping_timeout_s=timeout,
                minimum_version=minimum,
                locator=locator,
            )
    except (ConfigError, UnsupportedStore, MalformedVersion) as exc:
        print(f"[FAIL] config  {exc}")
        return EXIT_CONFIG
    print_report(report)
    if tags:
        capture_diagnostics(report.diagnostics, tags)
    return report.exit_code()


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
