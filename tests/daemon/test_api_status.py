"""
Integration tests for status API endpoints.

Tests health check and status endpoints.
"""

import pytest
from fastapi.testclient import TestClient


@pytest.mark.integration
class TestStatusAPI:
    """Test status API endpoints."""

    def test_root_endpoint_returns_api_info(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "personad"
        assert "version" in data
        assert "docs" in data

    def test_status_endpoint_returns_running(self, client: TestClient) -> None:
        response = client.get("/api/v1/status")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["uptimeSeconds"] >= 0
        assert data["model"] == "gemini-2.5-flash"
        assert data["stateDir"].endswith("state")

    def test_health_check_returns_healthy(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
