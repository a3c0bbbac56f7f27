from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from resumezen.core.logging import get_request_id
from resumezen.core.middleware.request_id import RequestIdMiddleware


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/")
    async def root(request: Request):
        return {
            "state": getattr(request.state, "request_id", None),
            "context": get_request_id(),
        }

    return app


def test_generates_request_id_when_missing():
    resp = TestClient(_make_app()).get("/")
    rid = resp.headers.get("x-request-id")

    assert resp.status_code == 200
    assert rid
    assert resp.json() == {"state": rid, "context": rid}


def test_echoes_provided_request_id():
    resp = TestClient(_make_app()).get("/", headers={"X-Request-Id": "test-rid-123"})
    assert resp.headers.get("x-request-id") == "test-rid-123"
    assert resp.json()["context"] == "test-rid-123"


def test_context_cleared_after_request():
    TestClient(_make_app()).get("/")
    assert get_request_id() is None
