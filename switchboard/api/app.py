"""FastAPI application factory.

Creates and configures the FastAPI application with middleware,
exception handlers, and route registration.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from switchboard import __version__
from switchboard.api.dependencies import get_settings
from switchboard.api.exceptions import SwitchboardAPIError
from switchboard.api.models.errors import ErrorCode, ErrorDetail, ErrorResponse
from switchboard.api.routes import register_routes
from switchboard.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
    )

    app = FastAPI(
        title="Switchboard API",
        description="Rules inference engine for IVR contact flows",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=settings.api.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    register_routes(app)

    logger.info(
        "app_created",
        debug=settings.debug,
        cors_origins=settings.api.cors_origins,
    )

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(SwitchboardAPIError)
    async def switchboard_api_error_handler(
        request: Request, exc: SwitchboardAPIError
    ) -> JSONResponse:
        """Handle SwitchboardAPIError and its subclasses."""
        logger.warning(
            "api_error",
            error_code=exc.error_code.value,
            message=exc.message,
            contact_id=exc.contact_id,
            path=request.url.path,
        )

        response = ErrorResponse.build(exc.error_code, exc.message, contact_id=exc.contact_id)
        return JSONResponse(status_code=response.status_code, content=response.model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle FastAPI request validation errors."""
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)

        response = ErrorResponse.build(
            ErrorCode.INVALID_REQUEST,
            "Request validation failed",
            details=ErrorDetail.from_validation_errors(exc.errors()),
        )
        return JSONResponse(status_code=response.status_code, content=response.model_dump())

    @app.exception_handler(ValidationError)
    async def pydantic_validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        logger.warning("pydantic_validation_error", errors=exc.errors(), path=request.url.path)

        response = ErrorResponse.build(
            ErrorCode.INVALID_REQUEST,
            "Data validation failed",
            details=ErrorDetail.from_validation_errors(exc.errors()),
        )
        return JSONResponse(status_code=response.status_code, content=response.model_dump())

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )

        response = ErrorResponse.build(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")
        return JSONResponse(status_code=response.status_code, content=response.model_dump())

    logger.debug("exception_handlers_registered")


# Create the app instance for uvicorn
app = create_app()
