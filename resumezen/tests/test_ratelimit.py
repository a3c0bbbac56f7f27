from fastapi import FastAPI
from fastapi.testclient import TestClient

from resumezen.core.config import settings
from resumezen.core.metrics import ratelimit_block_total
from resumezen.core.middleware.ratelimit import RateLimitMiddleware
from resumezen.core.middleware.request_id import RequestIdMiddleware
from resumezen.core.ratelimit import RateLimitConfig, TokenBucket, build_rate_limit_config


class FakeTime:
    def __init__(self):
        self.current = 0.0

    def advance(self, seconds: float):
        self.current += seconds

    def __call__(self):
        return self.current


def _make_app(config: RateLimitConfig, time_fn=None):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, config=config, time_fn=time_fn)
    app.add_middleware(RequestIdMiddleware)

    @app.get("/api/plan")
    async def catalog():
        return []

    @app.post("/api/plan/purchase")
    async def purchase():
        return {"ok": True}

    @app.post("/api/resume/process")
    async def process():
        return {"ok": True}

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    return app


def _env(enabled="true", per_minute="10", burst="10"):
    return {
        "RATE_LIMIT_ENABLED": enabled,
        "RATE_LIMIT_PER_MINUTE_DEFAULT": per_minute,
        "RATE_LIMIT_BURST_DEFAULT": burst,
    }


def test_ratelimit_disabled():
    client = TestClient(_make_app(build_rate_limit_config(_env(enabled="false", per_minute="1", burst="1"))))
    for _ in range(3):
        resp = client.get("/api/plan", headers={"X-User-Id": "user1"})
        assert resp.status_code == 200


def test_config_falls_back_to_settings_for_bad_values():
    config = build_rate_limit_config({"RATE_LIMIT_PER_MINUTE_DEFAULT": "zero", "RATE_LIMIT_BURST_DEFAULT": "-4"})
    assert config.per_minute_default == 120
    assert config.burst_default == 30


def test_ratelimit_blocks_after_limit():
    client = TestClient(_make_app(build_rate_limit_config(_env(per_minute="1", burst="1"))))

    first = client.get("/api/plan", headers={"X-User-Id": "user1"})
    assert first.status_code == 200

    second = client.get("/api/plan", headers={"X-User-Id": "user1"})
    assert second.status_code == 429
    assert second.json()["error"]["code"] == "rate_limited"
    assert second.headers.get("Retry-After") == "60"
    assert second.headers.get("X-RateLimit-Limit") == "1"
    assert second.headers.get("X-RateLimit-Remaining") == "0"
    assert second.headers.get("X-RateLimit-Reset") is None
    assert ratelimit_block_total.value({"scope": "/api/plan"}) == 1


def test_callers_have_separate_buckets():
    client = TestClient(_make_app(build_rate_limit_config(_env(per_minute="1", burst="1"))))
    assert client.get("/api/plan", headers={"X-User-Id": "user1"}).status_code == 200
    assert client.get("/api/plan", headers={"X-User-Id": "user2"}).status_code == 200


def test_user_id_header_ignored_in_production(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    client = TestClient(_make_app(build_rate_limit_config(_env(per_minute="1", burst="1"))))
    assert client.get("/api/plan", headers={"X-User-Id": "rotated-1"}).status_code == 200
    blocked = client.get("/api/plan", headers={"X-User-Id": "rotated-2"})
    assert blocked.status_code == 429


def test_analysis_bucket_is_strictest():
    client = TestClient(_make_app(build_rate_limit_config(_env())))
    headers = {"X-User-Id": "user3"}

    assert client.post("/api/resume/process", headers=headers).status_code == 200
    blocked = client.post("/api/resume/process", headers=headers)
    assert blocked.status_code == 429
    assert "analysis" in blocked.json()["error"]["message"]

    # other categories keep their own budget
    assert client.post("/api/plan/purchase", headers=headers).status_code == 200
    assert client.get("/api/plan", headers=headers).status_code == 200


def test_mutation_policy_stricter_than_reads():
    client = TestClient(_make_app(build_rate_limit_config(_env(per_minute="2", burst="2"))))
    headers = {"X-User-Id": "user4"}

    assert client.post("/api/plan/purchase", headers=headers).status_code == 200
    assert client.post("/api/plan/purchase", headers=headers).status_code == 429

    assert client.get("/api/plan", headers=headers).status_code == 200
    assert client.get("/api/plan", headers=headers).status_code == 200


def test_health_endpoints_are_exempt():
    client = TestClient(_make_app(RateLimitConfig(enabled=True, per_minute_default=1, burst_default=1)))
    for _ in range(5):
        assert client.get("/healthz").status_code == 200


def test_bucket_refills_over_time():
    fake_time = FakeTime()
    config = RateLimitConfig(enabled=True, per_minute_default=60, burst_default=1)
    client = TestClient(_make_app(config, time_fn=fake_time))
    headers = {"X-User-Id": "user5"}

    assert client.get("/api/plan", headers=headers).status_code == 200
    assert client.get("/api/plan", headers=headers).status_code == 429

    fake_time.advance(1.0)
    assert client.get("/api/plan", headers=headers).status_code == 200


def test_token_bucket_caps_at_capacity():
    fake_time = FakeTime()
    bucket = TokenBucket(capacity=2, refill_rate_per_sec=1.0, time_fn=fake_time)
    fake_time.advance(100)
    assert bucket.allow()
    assert bucket.allow()
    assert not bucket.allow()
