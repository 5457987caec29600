"""
Internal redirects.

Re-routes a request to another path inside the same application before
routing happens. The client never sees a 3xx; it receives whatever the
target route answers.
"""

from typing import Mapping

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

logger = structlog.get_logger(__name__)


class InternalRedirectMiddleware:
    """Pure ASGI middleware rewriting request paths from a fixed table."""

    def __init__(self, app: ASGIApp, rewrites: Mapping[str, str]) -> None:
        self.app = app
        self.rewrites = dict(rewrites)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            target = self.rewrites.get(scope["path"])
            if target is not None:
                logger.debug("internal_redirect", source=scope["path"], target=target)
                # Outer middleware keeps seeing the original path
                scope = dict(scope)
                scope["path"] = target
                scope["raw_path"] = target.encode("latin-1")

        await self.app(scope, receive, send)
