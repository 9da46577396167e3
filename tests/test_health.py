"""Test health check endpoint."""

from fastapi.testclient import TestClient

from prd_engine.main import app

client = TestClient(app)


def test_health_check():
    """Test that /health returns 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_request_id_echoed():
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_generated_when_absent():
    response = client.get("/health")
    assert response.headers["X-Request-ID"]
