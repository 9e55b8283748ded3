"""Token-bucket rate limiting shared by every upstream client.

One bucket per upstream endpoint. Callers ``await limiter.acquire(name)``
before each request; the call sleeps until a token is available.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit for one upstream endpoint."""

    requests_per_window: float
    window_seconds: float = 1.0
    burst_limit: int | None = None  # bucket capacity, defaults to requests_per_window


@dataclass
class TokenBucket:
    capacity: float
    tokens: float
    refill_rate: float  # tokens per second
    last_refill: float = field(default_factory=time.monotonic)

    def refill(self):
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: float = 1) -> bool:
        """Try to take tokens; True on success."""
        self.refill()
        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def wait_time(self, tokens: float = 1) -> float:
        """Seconds until ``tokens`` are available."""
        self.refill()
        if self.tokens >= tokens:
            return 0.0
        return (tokens - self.tokens) / self.refill_rate


def default_limits(quote_min_interval: float = 1.1) -> dict[str, RateLimitConfig]:
    """Limits for the upstreams the valuation engine talks to."""
    return {
        # Jupiter quote: ~1 req/sec on the free tier, no bursting
        "jupiter_quote": RateLimitConfig(
            requests_per_window=1, window_seconds=quote_min_interval, burst_limit=1
        ),
        "jupiter_price": RateLimitConfig(requests_per_window=10, window_seconds=10, burst_limit=2),
        "solana_rpc": RateLimitConfig(requests_per_window=10, window_seconds=1),
    }


class RateLimiter:
    """Rate limiter keyed by endpoint name, safe to share across tasks."""

    def __init__(self, limits: dict[str, RateLimitConfig] | None = None):
        self.limits = limits if limits is not None else default_limits()
        self._buckets: dict[str, TokenBucket] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_bucket(self, endpoint: str) -> TokenBucket:
        if endpoint not in self._buckets:
            config = self.limits.get(endpoint, RateLimitConfig(requests_per_window=10))
            capacity = config.burst_limit or config.requests_per_window
            refill_rate = config.requests_per_window / config.window_seconds
            self._buckets[endpoint] = TokenBucket(
                capacity=capacity, tokens=capacity, refill_rate=refill_rate
            )
        return self._buckets[endpoint]

    def _get_lock(self, endpoint: str) -> asyncio.Lock:
        if endpoint not in self._locks:
            self._locks[endpoint] = asyncio.Lock()
        return self._locks[endpoint]

    async def acquire(self, endpoint: str, tokens: float = 1) -> float:
        """Block until the request is allowed. Returns seconds waited."""
        async with self._get_lock(endpoint):
            bucket = self._get_bucket(endpoint)
            wait = bucket.wait_time(tokens)
            if wait > 0:
                logger.debug(f"Rate limit: waiting {wait:.2f}s for {endpoint}")
                await asyncio.sleep(wait)
                bucket.refill()
            # Sleep granularity can leave us fractionally short
            if not bucket.consume(tokens):
                bucket.tokens = 0.0
            return wait

    def get_status(self) -> dict[str, dict]:
        status = {}
        for endpoint, bucket in self._buckets.items():
            bucket.refill()
            status[endpoint] = {
                "tokens": round(bucket.tokens, 3),
                "capacity": bucket.capacity,
                "refill_rate": bucket.refill_rate,
            }
        return status
