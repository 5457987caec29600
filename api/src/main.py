"""
FastAPI application entry point for the Showcase API.

This module provides the application factory with:
- Rendering, binding, upload, streaming and HTTP method examples
- Basic-auth protected admin group
- Request logging and Prometheus metrics
- Internal redirects
- Panic recovery and error handlers
- Resource setup and bounded cleanup in the lifespan
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src.config import Settings, get_settings
from api.src.middleware.auth import BasicAuth
from api.src.middleware.logging import RequestLoggingMiddleware
from api.src.middleware.redirect import InternalRedirectMiddleware
from api.src.models.responses import HealthResponse
from api.src.routers import (
    admin_router,
    binding_router,
    methods_router,
    rendering_router,
    streaming_router,
    uploads_router,
)
from api.src.services.background import BackgroundTaskRunner
from api.src.services.upstream import UpstreamClient

logger = structlog.get_logger(__name__)

# Paths re-routed inside the application before routing
INTERNAL_REDIRECTS = {
    "/redirect2": "/ping",
}


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - Upstream HTTP session creation
    - Draining background tasks within their share of the shutdown timeout
    - Resource cleanup
    """
    settings: Settings = app.state.settings

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    upstream = UpstreamClient(timeout=settings.upstream_timeout)

    try:
        await upstream.start()
        app.state.upstream = upstream

        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    finally:
        logger.info("application_shutting_down")

        try:
            cancelled = await app.state.task_runner.shutdown(settings.task_drain_timeout)
            if cancelled:
                logger.warning("background_tasks_abandoned", count=cancelled)

            await upstream.close()
            app.state.upstream = None

            logger.info("application_shutdown_complete")

        except Exception as e:
            logger.error("application_shutdown_failed", error=str(e), exc_info=True)


# ============================================================================
# Exception Handlers
# ============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=exc.errors()
    )
    request.state.error = "validation error"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, keeping headers such as auth challenges."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Recover from unexpected exceptions with a 500 response."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the non-serializable ``ctx`` and ``input`` values."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]


# ============================================================================
# Application Factory
# ============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build a configured application.

    Args:
        settings: Settings to use; the cached environment settings by default

    Returns:
        FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Example endpoints for response rendering, request binding, "
            "uploads, basic authentication, streaming and redirects."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.templates = Jinja2Templates(directory=str(settings.templates_dir))
    app.state.basic_auth = BasicAuth(settings.basic_auth_accounts, realm=settings.basic_auth_realm)
    app.state.task_runner = BackgroundTaskRunner()
    app.state.upstream = None

    # ========================================================================
    # Middleware Configuration (last added runs first)
    # ========================================================================

    app.add_middleware(InternalRedirectMiddleware, rewrites=INTERNAL_REDIRECTS)
    app.add_middleware(RequestLoggingMiddleware)

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # ========================================================================
    # Routers
    # ========================================================================

    app.include_router(rendering_router)
    app.include_router(binding_router)
    app.include_router(uploads_router)
    app.include_router(streaming_router)
    app.include_router(methods_router)
    app.include_router(admin_router)

    # ========================================================================
    # Health and Metrics Endpoints
    # ========================================================================

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns basic health status without checking dependencies.
        """
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment
        }

    if settings.metrics_enabled:
        @app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
        async def metrics() -> Response:
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(),
                media_type=CONTENT_TYPE_LATEST
            )

    logger.debug("application_created", routes=len(app.routes))
    return app


app = create_app()


if __name__ == "__main__":
    """
    Run the application with Uvicorn for development.

    Use `python -m api.src` for the runner with bounded graceful shutdown.
    """
    settings = get_settings()
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
