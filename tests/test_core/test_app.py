# tests/test_core/test_app.py
import uuid

import pytest
from fastapi.testclient import TestClient

import app.main as main_mod


@pytest.fixture
def client():
    return TestClient(main_mod.create_app())


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_security_headers_present(client):
    resp = client.get("/healthz")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "default-src 'none'" in resp.headers["Content-Security-Policy"]
    # HSTS is production-only
    assert "Strict-Transport-Security" not in resp.headers
    assert "server" not in resp.headers


def test_request_id_is_echoed_when_safe(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "edge-42.a"})
    assert resp.headers["X-Request-ID"] == "edge-42.a"


def test_unsafe_request_id_is_replaced(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "bad id<script>"})
    rid = resp.headers["X-Request-ID"]
    assert rid != "bad id<script>"
    uuid.UUID(rid)


def test_metrics_exposition(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "playback_grants_total" in resp.text


def test_readyz_reports_db_down(monkeypatch, client):
    async def _down():
        return False

    monkeypatch.setattr(main_mod, "db_healthcheck", _down)
    resp = client.get("/readyz")
    assert resp.status_code == 503
    body = resp.json()
    assert body["ready"] is False
    assert body["checks"]["redis"] is True


def test_v1_routes_are_mounted(client):
    paths = {r.path for r in main_mod.app.routes}
    assert "/api/v1/episodes/{episode_id}/playback-grant" in paths
    assert "/api/v1/watch-progress" in paths
    assert "/api/v1/series/{series_id}/episodes" in paths


def test_unknown_route_is_problem_json(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
