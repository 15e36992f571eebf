"""Tests for health check endpoints."""

from palaver import __version__


class TestHealthEndpoints:
    """Tests for /health, /ready, /live endpoints."""

    def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "palaver"
        assert data["version"] == __version__
        assert data["messages"] == "/api/messages"
        assert data["status"] == "running"

    def test_health_endpoint(self, client):
        """Test /health returns system health."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert "timestamp" in data
        assert isinstance(data["services"], list)

    def test_health_lists_dependencies(self, client):
        data = client.get("/health").json()
        services = {s["name"]: s for s in data["services"]}

        assert services["storage"]["status"] == "healthy"
        assert services["channel_auth"]["status"] == "degraded"
        assert services["qna_maker"]["status"] == "skipped"

    def test_health_degraded_without_auth_in_production(self, monkeypatch):
        from fastapi.testclient import TestClient

        from palaver.api.main import create_app

        monkeypatch.setenv("PALAVER_ENV", "production")
        with TestClient(create_app()) as client:
            data = client.get("/health").json()

        assert data["status"] == "degraded"

    def test_ready_endpoint(self, client):
        """Test /ready returns readiness status."""
        response = client.get("/ready")
        assert response.status_code == 200

        data = response.json()
        assert data["ready"] is True
        assert data["checks"] == {"bot": True, "adapter": True, "config": True, "storage": True}

    def test_live_endpoint(self, client):
        """Test /live returns liveness status."""
        response = client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_metrics_endpoint(self, client):
        client.get("/")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "palaver_requests_total" in response.text

    def test_openapi_lists_messages_route(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "/api/messages" in paths
