"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billing_engine.api.routes import (
    health_router,
    lien_waivers_router,
    pay_apps_router,
    reports_router,
    sov_router,
)
from billing_engine.config import get_settings
from billing_engine.database import create_schema, init_db
from billing_engine.errors import (
    BillingError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific class wins (NumberingConflictError resolves via PreconditionError)
ERROR_STATUS_CODES: dict[type[BillingError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PreconditionError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


def status_code_for(exc: BillingError) -> int:
    """Resolve the HTTP status of a billing error through its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    engine, _ = init_db()
    if settings.auto_create_schema:
        await create_schema(engine)
    logger.info("Billing engine %s started", settings.engine_version)
    yield
    # Shutdown
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SOV Billing Engine API",
        description="Schedule of Values and AIA G702/G703 progress billing",
        version=get_settings().engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(BillingError)
    async def billing_exception_handler(
        request: Request, exc: BillingError
    ) -> JSONResponse:
        """Translate domain errors into the error envelope."""
        return JSONResponse(
            status_code=status_code_for(exc),
            content={
                "detail": exc.message,
                "code": exc.code,
                "context": exc.context or None,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(sov_router, prefix="/api/v1")
    app.include_router(pay_apps_router, prefix="/api/v1")
    app.include_router(lien_waivers_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
