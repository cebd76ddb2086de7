"""Bounded exponential backoff for flaky Slack Web API calls."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import structlog

from slack_intake.errors import RemoteAPIError

T = TypeVar("T")

RETRYABLE_ERROR_CODES = frozenset(
    {
        "rate_limited",
        "ratelimited",
        "internal_error",
        "network_error",
        "timeout",
        "service_unavailable",
        "gateway_timeout",
        "server_error",
        "fatal_error",
    }
)


def is_retryable(error_code: str | None) -> bool:
    return (error_code or "") in RETRYABLE_ERROR_CODES


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.factor < 1:
            raise ValueError("delays must be non-negative and the factor at least 1")

    def delay_for(self, attempt: int) -> float:
        """Return the pause after failed *attempt* (1-based)."""

        return self.base_delay * (self.factor ** (attempt - 1))

    def run(self, operation: Callable[[], T], *, method: str) -> T:
        """Call *operation*, retrying only retryable RemoteAPIErrors."""

        log = structlog.get_logger().bind(method=method)
        attempt = 1
        while True:
            try:
                return operation()
            except RemoteAPIError as exc:
                if not exc.retryable or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                log.warning(
                    "remote_call_retry",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=exc.error_code,
                    delay=delay,
                )
                self.sleep(delay)
                attempt += 1


DEFAULT_RETRY_POLICY = RetryPolicy()
