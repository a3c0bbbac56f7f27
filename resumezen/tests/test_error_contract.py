"""Tests for normalized error responses."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from resumezen.core.errors import AppError, app_error_handler
from resumezen.core.middleware.ratelimit import RateLimitMiddleware
from resumezen.core.middleware.request_id import RequestIdMiddleware
from resumezen.core.ratelimit import RateLimitConfig
from resumezen.main import app

HEADERS = {"X-User-Id": "user-123"}


def _assert_envelope(resp, code):
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert rid
    assert body["error"]["code"] == code
    assert body["error"]["request_id"] == rid
    assert body["detail"] == body["error"]["message"]
    return body


def test_unknown_route_is_not_found():
    resp = TestClient(app).get("/api/nope")
    assert resp.status_code == 404
    _assert_envelope(resp, "not_found")


def test_request_validation_has_standard_shape():
    resp = TestClient(app).post("/api/plan/purchase", headers=HEADERS, json={})
    assert resp.status_code == 422
    body = _assert_envelope(resp, "validation_error")
    assert "planId" in body["error"]["technical_detail"]


def test_unknown_plan_is_not_found():
    resp = TestClient(app).post("/api/plan/purchase", headers=HEADERS, json={"planId": "gold"})
    assert resp.status_code == 404
    _assert_envelope(resp, "not_found")


def test_missing_auth_is_unauthorized():
    resp = TestClient(app).get("/api/plan/user")
    assert resp.status_code == 401
    _assert_envelope(resp, "unauthorized")


def test_not_eligible_is_payment_required(client):
    resp = client.post(
        "/api/resume/process",
        headers=HEADERS,
        json={"url": "https://res.cloudinary.com/demo/raw/upload/resumes/resume.pdf"},
    )
    assert resp.status_code == 402
    _assert_envelope(resp, "not_eligible")


def test_provided_request_id_is_echoed_in_error():
    resp = TestClient(app).get("/api/nope", headers={"X-Request-Id": "rid-from-client"})
    assert resp.headers["x-request-id"] == "rid-from-client"
    assert resp.json()["error"]["request_id"] == "rid-from-client"


def test_app_error_extra_payload_and_detail():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(AppError, app_error_handler)

    class TeapotError(AppError):
        code = "teapot"
        status_code = 418

        def extra_payload(self):
            return {"brew": "earl grey"}

    @test_app.get("/brew")
    async def brew():
        raise TeapotError("No coffee here", technical_detail="pot is a teapot")

    resp = TestClient(test_app).get("/brew")
    assert resp.status_code == 418
    body = _assert_envelope(resp, "teapot")
    assert body["brew"] == "earl grey"
    assert body["error"]["technical_detail"] == "pot is a teapot"


def test_rate_limit_error_code():
    test_app = FastAPI()
    config = RateLimitConfig(enabled=True, per_minute_default=1, burst_default=1)
    test_app.add_middleware(RateLimitMiddleware, config=config)
    test_app.add_middleware(RequestIdMiddleware)

    @test_app.get("/api/plan/user")
    async def my_plans():
        return []

    client = TestClient(test_app)

    first = client.get("/api/plan/user", headers={"X-User-Id": "rl-user"})
    assert first.status_code == 200

    second = client.get("/api/plan/user", headers={"X-User-Id": "rl-user"})
    assert second.status_code == 429
    _assert_envelope(second, "rate_limited")
