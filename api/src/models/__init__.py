"""Data models for the FastAPI service.

This package contains Pydantic models for request binding and for the
documented shapes of JSON responses.
"""

from api.src.models.binding import Person
from api.src.models.responses import BindingErrorResponse, ErrorResponse, FormEcho, HealthResponse

__all__ = [
    "Person",
    "BindingErrorResponse",
    "ErrorResponse",
    "FormEcho",
    "HealthResponse",
]
