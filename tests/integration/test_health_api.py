"""
Integration Tests for Health Endpoint
=====================================
"""

from fastapi import status
from fastapi.testclient import TestClient

from html2img.api.main import create_app

from tests.utils.data_generators import RenderRequestGenerator
from tests.utils.mocks import MOCK_BROWSER_VERSION


class TestHealthEndpoint:
    """Test GET /health."""

    def test_healthy(self, client):
        """Test a configured server reports healthy."""
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.1.1"
        assert "timestamp" in data

    def test_unhealthy_without_api_key(self, client, override_settings):
        """Test a server that would refuse every render reports unhealthy."""
        override_settings(api_key=None)

        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "unhealthy"

    def test_reports_browser_state(self, client, api_params):
        """Test browser connection and version are reported."""
        client.post("/render", params=api_params, json=RenderRequestGenerator.basic())

        browser = client.get("/health").json()["browser"]

        assert browser["connected"] is True
        assert browser["version"] == MOCK_BROWSER_VERSION

    def test_does_not_acquire_browser(self, client, browser_provider):
        """Test health checks never launch a browser."""
        client.get("/health")

        assert browser_provider.acquire_calls == 0

    def test_shutdown_releases_browser(self, browser_provider):
        """Test the application lifespan shuts the browser down."""
        with TestClient(create_app()) as test_client:
            test_client.get("/health")

        assert browser_provider.shutdown_calls == 1
