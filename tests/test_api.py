# tests/test_api.py
"""
Contract tests for API responses.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health(self, client):
        """Test /health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "data-maintenance"


class TestMaintenanceRoutesRegistered:
    """Admin maintenance routes are mounted and protected."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("post", "/v1/admin/maintenance/run"),
            ("get", "/v1/admin/maintenance/config"),
            ("put", "/v1/admin/maintenance/config"),
            ("get", "/v1/admin/maintenance/preview"),
            ("get", "/v1/admin/maintenance/status"),
        ],
    )
    def test_requires_admin_key(self, client, monkeypatch, method, path):
        monkeypatch.setenv("ADMIN_API_KEY", "secret")
        response = getattr(client, method)(path)
        assert response.status_code == 401
