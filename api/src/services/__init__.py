"""Services backing the example endpoints.

This package contains the upstream HTTP client used for streaming and the
runner that owns background work detached from requests.
"""

from api.src.services.background import BackgroundTaskRunner, RequestSnapshot
from api.src.services.upstream import UpstreamClient, UpstreamResponse, UpstreamUnavailable

__all__ = [
    "BackgroundTaskRunner",
    "RequestSnapshot",
    "UpstreamClient",
    "UpstreamResponse",
    "UpstreamUnavailable",
]
