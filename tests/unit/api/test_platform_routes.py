"""Unit tests for inference, integration and contact event endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from switchboard.api.dependencies import (
    get_contact_event_handler,
    get_integration_runner,
    get_orchestrator,
    reset_dependencies,
)
from switchboard.api.exceptions import SwitchboardAPIError
from switchboard.api.models.errors import ErrorResponse
from switchboard.api.routes.inference import router
from switchboard.inference.errors import InvalidRequestError, RuleSetExhaustedError
from switchboard.inference.models import InferenceEvent, InferenceRequest
from switchboard.platform.attributes import InMemoryContactAttributeService
from switchboard.platform.errors import RetryExhaustedError
from switchboard.platform.events import ContactEventHandler
from switchboard.state.models import SessionState
from switchboard.state.stores import InMemoryStateStore
from switchboard.stores.errors import ConnectionError


@pytest.fixture
def mock_orchestrator() -> MagicMock:
    """Mock orchestrator."""
    orchestrator = MagicMock()
    orchestrator.infer = AsyncMock(
        return_value={"CurrentRule": "Welcome", "CurrentRule_message": "Hello"}
    )
    return orchestrator


@pytest.fixture
def mock_runner() -> MagicMock:
    """Mock integration runner."""
    runner = MagicMock()
    runner.start = AsyncMock(return_value={"IntegrationStatus": "END"})
    runner.check_timeout = AsyncMock(return_value={"IntegrationStatus": "TIMEOUT"})
    runner.complete = AsyncMock(return_value=None)
    return runner


@pytest.fixture
def state_store() -> InMemoryStateStore:
    """In-memory state store."""
    return InMemoryStateStore()


@pytest.fixture
def attributes() -> InMemoryContactAttributeService:
    """In-memory platform attributes."""
    return InMemoryContactAttributeService()


@pytest.fixture
async def app(
    mock_orchestrator: MagicMock,
    mock_runner: MagicMock,
    state_store: InMemoryStateStore,
    attributes: InMemoryContactAttributeService,
) -> FastAPI:
    """Create test FastAPI app."""
    await reset_dependencies()

    app = FastAPI()
    app.include_router(router)

    @app.exception_handler(SwitchboardAPIError)
    async def switchboard_api_error_handler(_request, exc: SwitchboardAPIError) -> JSONResponse:
        response = ErrorResponse.build(exc.error_code, exc.message, contact_id=exc.contact_id)
        return JSONResponse(status_code=response.status_code, content=response.model_dump())

    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator
    app.dependency_overrides[get_integration_runner] = lambda: mock_runner
    app.dependency_overrides[get_contact_event_handler] = lambda: ContactEventHandler(
        state_store, attributes
    )

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client."""
    return TestClient(app, raise_server_exceptions=False)


class TestInferenceEndpoint:
    """Tests for POST /inference."""

    def test_returns_flattened_state(
        self, client: TestClient, mock_orchestrator: MagicMock
    ) -> None:
        """Inference returns the orchestrator's string state."""
        response = client.post(
            "/inference",
            json={
                "contact_id": "c1",
                "event": "NEW_SESSION",
                "dialled_number": "+61311111111",
                "contact_attributes": {"Language": "en"},
            },
        )

        assert response.status_code == 200
        assert response.json() == {"CurrentRule": "Welcome", "CurrentRule_message": "Hello"}
        request: InferenceRequest = mock_orchestrator.infer.call_args.args[0]
        assert request.event == InferenceEvent.NEW_SESSION
        assert request.contact_attributes == {"Language": "en"}

    def test_configuration_error_is_422(
        self, client: TestClient, mock_orchestrator: MagicMock
    ) -> None:
        """Rule configuration failures map to CONFIGURATION_ERROR."""
        mock_orchestrator.infer.side_effect = RuleSetExhaustedError(
            "Reached the end of rule set: Main", contact_id="c1"
        )

        response = client.post("/inference", json={"contact_id": "c1"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "CONFIGURATION_ERROR"
        assert error["contact_id"] == "c1"

    def test_invalid_request_is_400(
        self, client: TestClient, mock_orchestrator: MagicMock
    ) -> None:
        """Requests the orchestrator rejects map to INVALID_REQUEST."""
        mock_orchestrator.infer.side_effect = InvalidRequestError("Missing dialled number")

        response = client.post("/inference", json={"contact_id": "c1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_store_outage_is_503(self, client: TestClient, mock_orchestrator: MagicMock) -> None:
        """An unreachable store maps to STORE_UNAVAILABLE."""
        mock_orchestrator.infer.side_effect = ConnectionError("redis down")

        response = client.post("/inference", json={"contact_id": "c1"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORE_UNAVAILABLE"

    def test_missing_contact_id_rejected(self, client: TestClient) -> None:
        """Body validation runs before the orchestrator."""
        response = client.post("/inference", json={"event": "NEXT_STEP"})

        assert response.status_code == 422


class TestIntegrationEndpoints:
    """Tests for the /integration endpoints."""

    def test_start(self, client: TestClient, mock_runner: MagicMock) -> None:
        response = client.post("/integration/start", json={"contact_id": "c1"})

        assert response.status_code == 200
        assert response.json() == {"IntegrationStatus": "END"}
        mock_runner.start.assert_awaited_once_with("c1")

    def test_check(self, client: TestClient, mock_runner: MagicMock) -> None:
        response = client.post("/integration/check", json={"contact_id": "c1"})

        assert response.status_code == 200
        assert response.json() == {"IntegrationStatus": "TIMEOUT"}

    def test_complete(self, client: TestClient, mock_runner: MagicMock) -> None:
        response = client.post(
            "/integration/complete",
            json={"contact_id": "c1", "status": "ERROR", "error_cause": "Backend failed"},
        )

        assert response.status_code == 204
        mock_runner.complete.assert_awaited_once_with(
            "c1", status="ERROR", response=None, error_cause="Backend failed"
        )


class TestContactEventsEndpoint:
    """Tests for POST /contact-events."""

    @pytest.mark.asyncio
    async def test_disconnect_writes_attributes(
        self,
        client: TestClient,
        state_store: InMemoryStateStore,
        attributes: InMemoryContactAttributeService,
    ) -> None:
        """Changed attributes are pushed back to the platform."""
        state = SessionState(contact_id="c1")
        state.set("ContactAttributes", {"Tier": "Gold"})
        await state_store.persist(state)

        response = client.post("/contact-events", json={"contact_id": "c1"})

        assert response.status_code == 200
        assert response.json() == {"contact_id": "c1", "updated_attributes": 1}
        assert await attributes.get_attributes("c1") == {"Tier": "Gold"}

    def test_platform_outage_is_502(self, app: FastAPI) -> None:
        """Exhausted platform retries map to PLATFORM_ERROR."""
        handler = MagicMock()
        handler.on_disconnect = AsyncMock(
            side_effect=RetryExhaustedError("Platform call failed", attempts=20)
        )
        app.dependency_overrides[get_contact_event_handler] = lambda: handler

        response = TestClient(app, raise_server_exceptions=False).post(
            "/contact-events", json={"contact_id": "c1"}
        )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PLATFORM_ERROR"
