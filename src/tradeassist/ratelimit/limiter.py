"""Keyed fixed-window rate limiter.

Each key owns one counter that lives for one window. The first request in a
window opens a fresh record with a count of one; further requests increment
the count until the limit is reached, after which requests are rejected with
the time remaining until the window resets.

Usage:
    limiter = RateLimiter()
    result = limiter.check("chat-minute:203.0.113.7", limit=20, window_ms=60_000)
    if not result.allowed:
        ...  # reject with result.retry_after_ms
"""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.requests import Request

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    """Counter state for one key in its current window."""

    count: int
    reset_at: float  # milliseconds on the limiter clock


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate-limit check."""

    allowed: bool
    remaining: int
    reset_at: float
    retry_after_ms: int = 0


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named limit applied to every caller independently."""

    name: str
    limit: int
    window_ms: int


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Thread-safe fixed-window counters keyed by caller identity.

    Every call to :meth:`check` that is allowed consumes one unit of quota.
    Exceeding the limit is a normal outcome reported in the result; the
    limiter itself never raises.
    """

    def __init__(
        self,
        clock: Callable[[], float] = _monotonic_ms,
        sweep_interval: float = 300.0,
    ) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning milliseconds
            sweep_interval: Seconds between automatic sweeps of expired records
        """
        self._clock = clock
        self._sweep_interval_ms = sweep_interval * 1000
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + self._sweep_interval_ms

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Check and consume quota for a key.

        Args:
            key: Caller identity combined with the limiter name
            limit: Maximum allowed requests per window
            window_ms: Window length in milliseconds

        Returns:
            RateLimitResult with the decision and retry hint
        """
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep_locked(now)

            record = self._records.get(key)
            if record is None or now >= record.reset_at:
                record = RateLimitRecord(count=1, reset_at=now + window_ms)
                self._records[key] = record
                return RateLimitResult(
                    allowed=True,
                    remaining=max(0, limit - 1),
                    reset_at=record.reset_at,
                )

            if record.count >= limit:
                retry_after = max(1, math.ceil(record.reset_at - now))
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=record.reset_at,
                    retry_after_ms=retry_after,
                )

            record.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - record.count,
                reset_at=record.reset_at,
            )

    def check_all(
        self, caller: str, policies: list[RateLimitPolicy]
    ) -> tuple[RateLimitPolicy, RateLimitResult] | None:
        """Run every policy for a caller and report the first rejection.

        Args:
            caller: Caller identity (usually the client IP)
            policies: Policies to apply, in order

        Returns:
            The rejecting policy and its result, or None if all allowed
        """
        for policy in policies:
            result = self.check(f"{policy.name}:{caller}", policy.limit, policy.window_ms)
            if not result.allowed:
                logger.warning(
                    "Rate limit %s exceeded for %s (retry in %dms)",
                    policy.name,
                    caller,
                    result.retry_after_ms,
                )
                return policy, result
        return None

    def sweep(self) -> int:
        """Drop records whose window has lapsed.

        Returns:
            Number of records removed
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, record in self._records.items() if now >= record.reset_at]
        for key in expired:
            del self._records[key]
        self._next_sweep = now + self._sweep_interval_ms
        if expired:
            logger.debug("Swept %d expired rate-limit records", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def client_identity(request: Request) -> str:
    """Extract the caller identity used for rate limiting.

    Honors proxy headers set by the storefront's load balancer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"
