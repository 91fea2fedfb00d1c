# =============================================================================
# lib/rate_limit.py - Fixed-Window Rate Limiting
# =============================================================================
# Counts requests per key in Redis using INCR + EXPIRE. The first hit in a
# window sets the expiry; TTL on the counter gives the Retry-After value.
#
# With a limit of N, requests 1..N in a window are allowed and N+1 is
# rejected until the key expires.
#
# Usage:
#   limiter = RateLimiter(redis_client)
#   result = limiter.hit(rate_limit_key("listing-create", user_id, ip), limit=5, window_seconds=60)
#   if not result.allowed: ...
# =============================================================================

import logging
from dataclasses import dataclass

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single counted request."""
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


def rate_limit_key(scope: str, *parts: object) -> str:
    """Build a counter key, e.g. ratelimit:listing-create:<user>:<ip>"""
    return ":".join([KEY_PREFIX, scope, *(str(part) for part in parts)])


class RateLimiter:
    """
    Fixed-window counter backed by Redis.

    If Redis is unreachable the request is allowed and the failure logged.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """
        Count one request against `key`.

        Args:
            key: Counter key (see rate_limit_key)
            limit: Requests allowed per window
            window_seconds: Window length

        Returns:
            RateLimitResult; retry_after is 0 when allowed
        """
        try:
            count = int(self.client.incr(key))
            if count == 1:
                self.client.expire(key, window_seconds)
            ttl = int(self.client.ttl(key))
            if ttl < 0:
                # Key lost its expiry (e.g. crash between INCR and EXPIRE)
                self.client.expire(key, window_seconds)
                ttl = window_seconds
        except redis.RedisError as e:
            logger.error(f"Rate limiter unavailable, allowing request for {key}: {e}")
            return RateLimitResult(allowed=True, limit=limit, remaining=limit, retry_after=0)

        if count > limit:
            logger.warning(f"Rate limit exceeded for {key}: {count}/{limit}")
            return RateLimitResult(allowed=False, limit=limit, remaining=0, retry_after=max(ttl, 1))

        return RateLimitResult(allowed=True, limit=limit, remaining=limit - count, retry_after=0)
