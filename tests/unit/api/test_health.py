"""Unit tests for health check and metrics endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from switchboard.api.dependencies import (
    get_rule_cache,
    get_state_store,
    reset_dependencies,
)
from switchboard.api.routes.health import router
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.stores import InMemoryRuleConfigStore
from switchboard.state.stores import InMemoryStateStore
from switchboard.stores.errors import ConnectionError
from tests.factories import RuleSetFactory


@pytest.fixture
def state_store() -> InMemoryStateStore:
    """In-memory state store."""
    return InMemoryStateStore()


@pytest.fixture
def rule_cache() -> RuleSetCache:
    """Rule cache over an in-memory store."""
    return RuleSetCache(InMemoryRuleConfigStore(rule_sets=[RuleSetFactory.create()]))


@pytest.fixture
async def app(state_store: InMemoryStateStore, rule_cache: RuleSetCache) -> FastAPI:
    """Create test FastAPI app."""
    await reset_dependencies()

    app = FastAPI()
    app.include_router(router)

    app.dependency_overrides[get_state_store] = lambda: state_store
    app.dependency_overrides[get_rule_cache] = lambda: rule_cache

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_returns_200_when_healthy(self, client: TestClient) -> None:
        """Health check returns 200 when all components healthy."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "timestamp" in data

    def test_health_lists_components(self, client: TestClient) -> None:
        """Health check reports the state store and rule cache."""
        data = client.get("/health").json()

        components = {c["name"]: c for c in data["components"]}
        assert components["state_store"]["status"] == "healthy"
        assert components["rule_cache"]["status"] == "healthy"
        assert components["rule_cache"]["message"] == "1 rule sets"

    def test_unreachable_state_store_is_unhealthy(self, app: FastAPI) -> None:
        """A failing state store makes the service unhealthy."""
        store = MagicMock()
        store.load = AsyncMock(side_effect=ConnectionError("redis down"))
        app.dependency_overrides[get_state_store] = lambda: store

        data = TestClient(app).get("/health").json()

        assert data["status"] == "unhealthy"
        components = {c["name"]: c for c in data["components"]}
        assert components["state_store"]["message"] == "redis down"

    def test_rule_cache_failure_is_degraded(self, app: FastAPI) -> None:
        """A rule cache that cannot refresh degrades the service."""
        cache = MagicMock()
        cache.refresh = AsyncMock(side_effect=ConnectionError("redis down"))
        app.dependency_overrides[get_rule_cache] = lambda: cache

        data = TestClient(app).get("/health").json()

        assert data["status"] == "degraded"


class TestMetricsEndpoint:
    """Tests for GET /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Metrics endpoint returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "switchboard_" in response.text
