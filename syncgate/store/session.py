"""
Store connection lifecycle: engine factory and a context manager with guaranteed dispose.
The gate only borrows pooled connections; whoever creates the engine owns it.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from ..core.errors import ConfigError


def engine_options(dsn: str, connect_timeout_s: Optional[float] = None, **engine_kwargs: Any) -> Dict[str, Any]:
    """
    create_engine keyword arguments for dsn. A connect timeout is handed to the
    PostgreSQL driver (whole seconds, at least 1) so a blackholed host gives up on its own.
    Raises ConfigError for an unparsable DSN.
    """
    try:
        backend = make_url(dsn).get_backend_name()
    except ArgumentError as exc:
        raise ConfigError(f"cannot parse store DSN: {exc}") from exc
    opts = dict(engine_kwargs)
    if connect_timeout_s is not None and backend == "postgresql":
        connect_args = dict(opts.get("connect_args") or {})
        connect_args.setdefault("connect_timeout", max(1, int(math.ceil(connect_timeout_s))))
        opts["connect_args"] = connect_args
    return opts


def create_store_engine(dsn: str, connect_timeout_s: Optional[float] = None, **engine_kwargs: Any) -> Engine:
    """
    Build a pooled SQLAlchemy Engine for dsn. No connection is opened yet.
    Raises ConfigError for an unparsable DSN or a missing driver.
    """
    if not dsn:
        raise ConfigError("store DSN is empty")
    opts = engine_options(dsn, connect_timeout_s, **engine_kwargs)
    try:
        return create_engine(dsn, **opts)
    except (ArgumentError, NoSuchModuleError, ImportError) as exc:
        raise ConfigError(f"cannot build store engine for DSN: {exc}") from exc


@contextmanager
def store_engine(
    dsn: str, connect_timeout_s: Optional[float] = None, **engine_kwargs: Any
) -> Generator[Engine, None, None]:
    """Yield an Engine whose pool is always disposed on exit."""
    engine = create_store_engine(dsn, connect_timeout_s, **engine_kwargs)
    try:
        yield engine
    finally:
        engine.dispose()
