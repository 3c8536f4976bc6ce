"""Health check and metrics endpoints."""

import time
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from switchboard import __version__
from switchboard.api.dependencies import RuleCacheDep, StateStoreDep
from switchboard.api.models.health import ComponentHealth, HealthResponse
from switchboard.observability.logging import get_logger
from switchboard.rules.cache import RuleSetCache
from switchboard.state.store import StateStore
from switchboard.stores.errors import StoreError

logger = get_logger(__name__)

router = APIRouter()

HEALTH_PROBE_CONTACT = "health-check"


async def _check_state_store(store: StateStore) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await store.load(HEALTH_PROBE_CONTACT)
    except StoreError as e:
        return ComponentHealth(
            name="state_store",
            status="unhealthy",
            latency_ms=(time.perf_counter() - start) * 1000,
            message=str(e),
        )
    return ComponentHealth(
        name="state_store",
        status="healthy",
        latency_ms=(time.perf_counter() - start) * 1000,
    )


async def _check_rule_cache(cache: RuleSetCache) -> ComponentHealth:
    """Rule configuration is degraded when the cache cannot refresh."""
    start = time.perf_counter()
    try:
        await cache.refresh()
    except StoreError as e:
        return ComponentHealth(
            name="rule_cache",
            status="degraded",
            latency_ms=(time.perf_counter() - start) * 1000,
            message=str(e),
        )
    return ComponentHealth(
        name="rule_cache",
        status="healthy",
        latency_ms=(time.perf_counter() - start) * 1000,
        message=f"{len(cache.rule_sets)} rule sets",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    state_store: StateStoreDep,
    cache: RuleCacheDep,
) -> HealthResponse:
    """Check service health status.

    Returns the overall status along with the status of the state store
    and the rule set cache.
    """
    logger.debug("health_check_request")

    components = [
        await _check_state_store(state_store),
        await _check_rule_cache(cache),
    ]

    overall_status: Literal["healthy", "degraded", "unhealthy"]
    if any(c.status == "unhealthy" for c in components):
        overall_status = "unhealthy"
    elif any(c.status == "degraded" for c in components):
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        version=__version__,
        components=components,
        timestamp=datetime.now(UTC),
    )


@router.get("/metrics")
async def get_metrics() -> Response:
    """Get Prometheus metrics in text format for scraping."""
    logger.debug("metrics_request")
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
