"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - healthy response with version and per-component status
  - degraded status when the database does not answer
  - reachable without credentials
  - framework 404s use the shared error envelope
"""

from __future__ import annotations

from api.main import APP_VERSION


def test_health_reports_components(api_client):
    client, _token, _ = api_client
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "healthy",
        "version": APP_VERSION,
        "components": {"app": "ok", "database": "ok"},
    }


def test_health_degraded_when_database_down(api_client, monkeypatch):
    client, _token, _ = api_client
    monkeypatch.setattr(client.app.state.user_store, "ping", lambda: False)
    data = client.get("/api/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"


def test_health_needs_no_token(api_client):
    client, _, _ = api_client
    client.cookies.clear()
    assert client.get("/api/health").status_code == 200


def test_unknown_route_uses_error_envelope(api_client):
    """Framework 404s share the {"error": ..., "code": ...} body with domain errors."""
    client, _, _ = api_client
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["code"] == "http_404"
