"""
Token-bucket rate limiter.

- In-memory, keyed by caller + route category.
- Disabled unless RATE_LIMIT_ENABLED is set.
- Analysis submissions (POST /api/resume/*) draw from their own, smaller
  bucket since each one fans out to three paid providers.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional


@dataclass
class RateLimitConfig:
    enabled: bool = False
    per_minute_default: int = 120
    burst_default: int = 30
    # fraction of the default budget granted to analysis submissions
    analysis_factor: float = 0.1


class TokenBucket:
    def __init__(self, capacity: int, refill_rate_per_sec: float, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.tokens = float(self.capacity)
        self.refill_rate = max(0.0, refill_rate_per_sec)
        self.time_fn = time_fn
        self.last_refill = self.time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def allow(self, cost: float = 1.0) -> bool:
        self._refill()
        if self.tokens >= cost:
            self.tokens -= cost
            return True
        return False


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def allow(self, key: str, *, per_minute: int, burst: int) -> bool:
        with self._lock:
            bucket = self.buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(capacity=burst, refill_rate_per_sec=per_minute / 60.0, time_fn=self.time_fn)
                self.buckets[key] = bucket
            return bucket.allow()

    def reset(self) -> None:
        with self._lock:
            self.buckets.clear()


def build_rate_limit_config(env: Optional[Mapping[str, str]] = None, settings_obj=None) -> RateLimitConfig:
    """Config from explicit env values, falling back to settings."""
    if settings_obj is None:
        from resumezen.core.config import settings as settings_obj

    env = env or {}

    def _bool(name: str, default: bool) -> bool:
        raw = env.get(name)
        if raw is None:
            return default
        return str(raw).lower() in {"1", "true", "yes", "on"}

    def _int(name: str, default: int) -> int:
        raw = env.get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            return default
        return value if value > 0 else default

    return RateLimitConfig(
        enabled=_bool("RATE_LIMIT_ENABLED", settings_obj.RATE_LIMIT_ENABLED),
        per_minute_default=_int("RATE_LIMIT_PER_MINUTE_DEFAULT", settings_obj.RATE_LIMIT_PER_MINUTE_DEFAULT),
        burst_default=_int("RATE_LIMIT_BURST_DEFAULT", settings_obj.RATE_LIMIT_BURST_DEFAULT),
    )
