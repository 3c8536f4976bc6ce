"""API route registration."""

from fastapi import APIRouter, FastAPI

from switchboard.observability.logging import get_logger

logger = get_logger(__name__)


def create_v1_router() -> APIRouter:
    """Create the v1 API router with all routes."""
    router = APIRouter(prefix="/v1")

    from switchboard.api.routes.batches import router as batches_router
    from switchboard.api.routes.inference import router as inference_router
    from switchboard.api.routes.interactive import router as interactive_router

    router.include_router(inference_router, tags=["Inference"])
    router.include_router(interactive_router, tags=["Interactive"])
    router.include_router(batches_router, tags=["Batches"])

    logger.debug("v1_router_created", routes=["inference", "interactive", "batches"])

    return router


def register_routes(app: FastAPI) -> None:
    """Register all routes with the FastAPI application."""
    app.include_router(create_v1_router())

    from switchboard.api.routes.health import router as health_router

    app.include_router(health_router, tags=["Health"])

    logger.info("routes_registered")
