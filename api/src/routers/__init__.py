"""API routers registered by the application factory."""

from api.src.routers.admin import admin_router
from api.src.routers.binding import router as binding_router
from api.src.routers.methods import router as methods_router
from api.src.routers.rendering import router as rendering_router
from api.src.routers.streaming import router as streaming_router
from api.src.routers.uploads import router as uploads_router

__all__ = [
    "admin_router",
    "binding_router",
    "methods_router",
    "rendering_router",
    "streaming_router",
    "uploads_router",
]
