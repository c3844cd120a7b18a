"""Tests for the application-level routes wired in ``pbx_api.main``."""

from __future__ import annotations

from fastapi.testclient import TestClient

from pbx_api.main import app


def test_healthz_reports_ok():
    # no context manager, so the lifespan never opens the Postgres pool
    client = TestClient(app)

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_exposes_user_create_counter():
    client = TestClient(app)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "pbx_api_user_create_total" in response.text


def test_unknown_api_endpoint_uses_error_envelope():
    client = TestClient(app)

    response = client.get("/api/trunks")

    assert response.status_code == 404
    assert response.json() == {
        "status": "error",
        "message": "Endpoint not found",
        "endpoint": "trunks",
    }
