"""FastAPI service showcasing common web framework features.

This package provides example endpoints for response rendering, request
binding, uploads, basic authentication, streaming, redirects and
background work, plus a server runner with bounded graceful shutdown.
"""

__version__ = "0.1.0"
