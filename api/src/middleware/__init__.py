"""FastAPI middleware components.

This package contains custom middleware for request logging and metrics,
HTTP Basic authentication and internal redirects.
"""

from api.src.middleware.auth import (
    BasicAuth,
    get_authenticated_user,
    require_basic_auth,
)
from api.src.middleware.logging import RequestLoggingMiddleware
from api.src.middleware.redirect import InternalRedirectMiddleware

__all__ = [
    # Auth
    "BasicAuth",
    "get_authenticated_user",
    "require_basic_auth",
    # Logging
    "RequestLoggingMiddleware",
    # Redirects
    "InternalRedirectMiddleware",
]
