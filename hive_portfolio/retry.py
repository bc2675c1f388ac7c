from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff.

    - max_attempts counts the first call (3 => 1 try + 2 retries).
    - the delay after failure n is base_delay_seconds * 2**(n-1), capped at max_delay_seconds.
    - jitter_ratio spreads each delay over [1-jitter, 1+jitter]; 0 keeps it exact.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    jitter_ratio: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if not (0.0 <= self.jitter_ratio <= 1.0):
            raise ValueError("jitter_ratio must be between 0 and 1")

    def delay_for(self, failed_attempt: int) -> float:
        exponent = max(0, int(failed_attempt) - 1)
        return min(self.max_delay_seconds, self.base_delay_seconds * (2**exponent))


@dataclass(frozen=True)
class RetryEvent:
    operation: str
    failed_attempt: int
    max_attempts: int
    delay_seconds: float
    reason: str | None
    error_type: str
    error_message: str


IsRetryableFn = Callable[[BaseException], "tuple[bool, str | None]"]
OnRetryFn = Callable[[RetryEvent], None]
SleepFn = Callable[[float], None]
AttemptFn = Callable[[int], T]


def _jittered(delay: float, ratio: float) -> float:
    if delay <= 0 or ratio <= 0:
        return max(0.0, delay)
    return max(0.0, delay * random.uniform(1.0 - ratio, 1.0 + ratio))


def call_with_retries(
    fn: AttemptFn[T],
    *,
    policy: RetryPolicy,
    is_retryable: IsRetryableFn,
    operation: str,
    on_retry: OnRetryFn | None = None,
    sleep_fn: SleepFn | None = None,
) -> T:
    """
    Call fn(attempt) until it succeeds, fails permanently or attempts run out.

    fn receives the 1-based attempt number so callers can rotate endpoints. The last
    failure (or the first non-retryable one) is re-raised unchanged.
    """
    op = (operation or "").strip() or "operation"
    sleeper = sleep_fn or time.sleep

    attempt = 1
    while True:
        try:
            return fn(attempt)
        except Exception as exc:
            retryable, reason = is_retryable(exc)
            if not retryable or attempt >= policy.max_attempts:
                raise

            delay = _jittered(policy.delay_for(attempt), policy.jitter_ratio)
            if on_retry is not None:
                on_retry(
                    RetryEvent(
                        operation=op,
                        failed_attempt=attempt,
                        max_attempts=policy.max_attempts,
                        delay_seconds=delay,
                        reason=reason,
                        error_type=type(exc).__name__,
                        error_message=(str(exc) or "").strip(),
                    )
                )
            if delay > 0:
                sleeper(delay)
            attempt += 1
