"""
Tests for the /health endpoint.

Verifies:
  - Returns HTTP 200 with status="ok" (API liveness check)
  - Reports the model client mode (mock in tests)
  - Root / endpoint returns API metadata
"""

from unittest.mock import patch


async def test_health_returns_200(client):
    """Health endpoint must always return 200 if the API process is alive."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test_health_response_schema(client):
    response = await client.get("/health")
    data = response.json()

    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["environment"] == "test"


async def test_health_reports_mock_mode(client):
    response = await client.get("/health")
    assert response.json()["model_mode"] == "mock"


async def test_health_reports_live_mode(client):
    from voxguard.ai import gemini_client as gemini_module

    with patch.object(gemini_module.gemini_client, "mock_mode", False):
        response = await client.get("/health")

    assert response.json()["model_mode"] == "live"


async def test_root_endpoint(client):
    """Root / must return API metadata with status=running."""
    response = await client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "running"
    assert data["name"] == "VoxGuard API"
    assert "version" in data


async def test_docs_available_in_test_env(client):
    """OpenAPI docs are disabled only when ENVIRONMENT=production."""
    response = await client.get("/docs")
    assert response.status_code == 200


async def test_unknown_route_returns_404(client):
    """Unknown routes should return 404, not 500."""
    response = await client.get("/does-not-exist")
    assert response.status_code == 404
