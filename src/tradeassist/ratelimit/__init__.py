"""Per-caller request throttling for the chat endpoint."""

from tradeassist.ratelimit.limiter import (
    RateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    client_identity,
)

__all__ = ["RateLimitPolicy", "RateLimitResult", "RateLimiter", "client_identity"]
