from fastapi.testclient import TestClient

import resumezen.api.health as health_api
from resumezen.main import app

client = TestClient(app)


def test_healthz_always_ok():
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_ok_against_test_database():
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_reports_missing_tables(monkeypatch):
    class FakeInspector:
        def has_table(self, name):
            return name != "resume_analyses"

    monkeypatch.setattr(health_api, "inspect", lambda engine: FakeInspector())

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert "resume_analyses" in resp.json()["detail"]


def test_readyz_handles_db_down(monkeypatch):
    def boom():
        raise RuntimeError("db down")

    monkeypatch.setattr(health_api, "get_engine", boom)

    resp = client.get("/readyz")
    body = resp.json()
    assert resp.status_code == 503
    assert body.get("status") == "error"
    assert "database" in body.get("detail", "")


def test_metrics_exposes_request_counts():
    client.get("/healthz")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert 'http_requests_total{method="GET",path="/healthz",status="200"} 1.0' in resp.text
    assert "# TYPE analyses_total counter" in resp.text
    assert "# TYPE analyses_in_flight gauge" in resp.text


def test_metrics_path_ids_are_normalized():
    client.get("/api/resume/history/0f8fa1c2d3e4b5a6", headers={"X-User-Id": "metrics-user"})
    text = client.get("/metrics").text
    assert 'path="/api/resume/history/:id",status="404"' in text
