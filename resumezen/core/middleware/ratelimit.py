import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from resumezen.core.auth import header_auth_allowed
from resumezen.core.errors import RateLimitError, app_error_handler
from resumezen.core.logging import get_request_id
from resumezen.core.metrics import normalize_path, ratelimit_block_total
from resumezen.core.ratelimit import InMemoryRateLimiter, RateLimitConfig, build_rate_limit_config

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
EXEMPT_PATHS = {"/healthz", "/readyz", "/metrics"}


@dataclass
class RoutePolicy:
    category: str
    per_minute: int
    burst: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket rate limiting middleware (opt-in)."""

    def __init__(
        self,
        app,
        *,
        config: Optional[RateLimitConfig] = None,
        env: Optional[Mapping[str, str]] = None,
        time_fn: Optional[Callable[[], float]] = None,
    ):
        super().__init__(app)
        self.config = config or build_rate_limit_config(env)
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)

    def _policy_for_request(self, request: Request) -> Optional[RoutePolicy]:
        path = request.url.path
        method = request.method.upper()
        if path in EXEMPT_PATHS:
            return None

        # Analysis submissions call storage, OCR and AI
        if path.startswith("/api/resume/") and method == "POST":
            factor = self.config.analysis_factor
            return RoutePolicy(
                category="analysis",
                per_minute=max(1, int(self.config.per_minute_default * factor)),
                burst=max(1, int(self.config.burst_default * factor)),
            )

        if method in MUTATING_METHODS:
            return RoutePolicy(
                category="mutation",
                per_minute=max(1, int(self.config.per_minute_default * 0.5)),
                burst=max(1, int(self.config.burst_default * 0.5)),
            )

        return RoutePolicy(category="read", per_minute=self.config.per_minute_default, burst=self.config.burst_default)

    def _client_key(self, request: Request, category: str) -> str:
        # X-User-Id is only an identity where auth accepts it
        user_id = request.headers.get("X-User-Id") if header_auth_allowed() else None
        if not user_id:
            auth = request.headers.get("Authorization")
            if auth:
                # Token tail differs per session; never logged
                user_id = auth[-24:]
        if user_id:
            return f"user:{user_id}:{category}"

        ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "unknown")
        return f"ip:{ip}:{category}"

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled:
            return await call_next(request)

        policy = self._policy_for_request(request)
        if not policy:
            return await call_next(request)

        key = self._client_key(request, policy.category)
        if self.limiter.allow(key, per_minute=policy.per_minute, burst=policy.burst):
            return await call_next(request)

        rid = getattr(request.state, "request_id", None) or get_request_id()
        ratelimit_block_total.inc(labels={"scope": normalize_path(request.url.path)})

        message = (
            "Too many analysis requests. Please wait a minute and try again."
            if policy.category == "analysis"
            else "Too many requests. Please slow down."
        )
        response = await app_error_handler(request, RateLimitError(message, request_id=rid))
        retry_after = max(1, int(60 / max(1, policy.per_minute)))
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(policy.per_minute)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response
