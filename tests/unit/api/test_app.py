"""Unit tests for the application factory and its error envelope."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from switchboard.api.app import create_app
from switchboard.api.dependencies import get_orchestrator, reset_dependencies
from switchboard.inference.errors import EndPointNotFoundError


@pytest.fixture
def mock_orchestrator() -> MagicMock:
    """Mock orchestrator."""
    orchestrator = MagicMock()
    orchestrator.infer = AsyncMock(return_value={"CurrentRule": "Welcome"})
    return orchestrator


@pytest.fixture
async def app(mock_orchestrator: MagicMock) -> FastAPI:
    """Create the full application with the orchestrator replaced."""
    await reset_dependencies()

    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client."""
    return TestClient(app, raise_server_exceptions=False)


class TestCreateApp:
    """Tests for route registration."""

    def test_health_is_unversioned(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200

    def test_inference_is_versioned(self, client: TestClient) -> None:
        response = client.post("/v1/inference", json={"contact_id": "c1"})

        assert response.status_code == 200
        assert response.json() == {"CurrentRule": "Welcome"}

    def test_openapi_lists_routes(self, client: TestClient) -> None:
        paths = client.get("/openapi.json").json()["paths"]

        assert "/v1/inference" in paths
        assert "/v1/interactive" in paths
        assert "/v1/batches/{batch_id}" in paths
        assert "/v1/integration/complete" in paths


class TestErrorEnvelope:
    """Tests for the global exception handlers."""

    def test_validation_error_is_400(self, client: TestClient) -> None:
        """Request body validation uses the INVALID_REQUEST envelope."""
        response = client.post("/v1/inference", json={"event": "NEXT_STEP"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert error["message"] == "Request validation failed"
        assert any(detail["field"] == "body.contact_id" for detail in error["details"])

    def test_domain_error_carries_contact(
        self, client: TestClient, mock_orchestrator: MagicMock
    ) -> None:
        """Engine errors keep the contact they occurred for."""
        mock_orchestrator.infer.side_effect = EndPointNotFoundError(
            "Failed to find end point by dialled number: +61300000000", contact_id="c1"
        )

        response = client.post("/v1/inference", json={"contact_id": "c1"})

        assert response.status_code == 422
        assert response.json() == {
            "error": {
                "code": "CONFIGURATION_ERROR",
                "message": "Failed to find end point by dialled number: +61300000000",
                "details": None,
                "contact_id": "c1",
            }
        }

    def test_unexpected_error_is_500(
        self, client: TestClient, mock_orchestrator: MagicMock
    ) -> None:
        """Unhandled exceptions are hidden behind INTERNAL_ERROR."""
        mock_orchestrator.infer.side_effect = RuntimeError("boom")

        response = client.post("/v1/inference", json={"contact_id": "c1"})

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": None,
            "contact_id": None,
        }
