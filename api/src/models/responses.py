"""
Response schemas for the documented JSON endpoints.

Used for OpenAPI documentation and as contracts in tests.
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str = Field(..., min_length=1)


class BindingErrorResponse(BaseModel):
    """Body returned when URI parameters fail to bind."""
    msg: str = Field(..., min_length=1)


class FormEcho(BaseModel):
    """Values read from the query string and the urlencoded form."""
    id: str = Field(default="", description="Query parameter id")
    page: str = Field(default="0", description="Query parameter page")
    name: str = Field(default="", description="Form field name")
    message: str = Field(default="", description="Form field message")


class HealthResponse(BaseModel):
    """Liveness response schema."""
    status: str
    service: str
    version: str
    environment: str
