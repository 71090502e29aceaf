"""Tests for the /health endpoint."""

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    """GET /health should return 200 with status 'ok'."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"


def test_health_reports_client_names(client: TestClient) -> None:
    """Upstream client names come from app state (mock in tests)."""
    data = client.get("/health").json()
    assert data["blockchain"] == "mock"
    assert data["ai"] == "mock"


def test_health_is_public(client: TestClient) -> None:
    response = client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 200
