"""
Retry with exponential backoff for registry lookups.

Only transient failures (connection errors, timeouts, 429/5xx) are retried;
anything else propagates on the first attempt.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry with exponential backoff."""
    max_retries: int = 3
    base_delay_s: float = 0.5
    max_delay_s: float = 10.0
    backoff_factor: float = 1.5
    retry_on_status_codes: tuple[int, ...] = (429, 500, 502, 503, 504)


class TransientHTTPError(Exception):
    """HTTP response with a status in RetryConfig.retry_on_status_codes."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code


_RETRYABLE: Tuple[Type[BaseException], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    TransientHTTPError,
)


def resilient_call(
    func: Callable[..., T],
    *args: Any,
    retry_config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """
    Execute func with retry on transient failures.
    Raises the last exception if all retries are exhausted.
    """
    cfg = retry_config or RetryConfig()

    last_err: Optional[BaseException] = None
    for attempt in range(1, cfg.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except _RETRYABLE as exc:
            last_err = exc
            logger.debug(
                "Attempt %d/%d failed: %s: %s", attempt, cfg.max_retries, type(exc).__name__, exc
            )
            if attempt < cfg.max_retries:
                delay = min(
                    cfg.base_delay_s * (cfg.backoff_factor ** (attempt - 1)),
                    cfg.max_delay_s,
                )
                sleep(delay)

    raise last_err  # type: ignore[misc]
