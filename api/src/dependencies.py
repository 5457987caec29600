"""
FastAPI dependency injection for application-scoped resources.

Provides injectable dependencies for:
- Settings of the running application instance
- Jinja2 templates
- Upstream HTTP client
- Background task runner

Every resource is stored on ``app.state`` by the application factory so
that several application instances (tests) never share state.
"""

import structlog
from fastapi import Request
from fastapi.templating import Jinja2Templates

from api.src.config import Settings
from api.src.services.background import BackgroundTaskRunner
from api.src.services.upstream import UpstreamClient

logger = structlog.get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """
    Get settings of the application serving the request.

    Returns:
        Settings instance passed to create_app()
    """
    return request.app.state.settings


def get_templates(request: Request) -> Jinja2Templates:
    """Get the template renderer."""
    return request.app.state.templates


def get_upstream_client(request: Request) -> UpstreamClient:
    """
    Get the upstream HTTP client.

    Raises:
        RuntimeError: If the application lifespan has not started
    """
    client = getattr(request.app.state, "upstream", None)
    if client is None:
        logger.error("upstream_client_not_initialized")
        raise RuntimeError(
            "Upstream client not initialized. Run the application with its lifespan."
        )
    return client


def get_task_runner(request: Request) -> BackgroundTaskRunner:
    """Get the background task runner."""
    return request.app.state.task_runner
