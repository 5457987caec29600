"""
Request binding models.

Pydantic schemas that query strings and URI path parameters are bound into.
"""

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Person(BaseModel):
    """Person bound from query or path parameters; both fields required."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "appleboy",
                "address": "xyz"
            }
        },
    )

    name: str = Field(
        ...,
        min_length=1,
        description="Person name"
    )
    address: str = Field(
        ...,
        min_length=1,
        description="Postal address"
    )

    @field_validator("name", "address")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """Reject whitespace-only values; bound values are kept verbatim."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @classmethod
    def bind(cls, values: Mapping[str, str]) -> "Person":
        """
        Bind a person from a flat string mapping.

        Only ``name`` and ``address`` are read; any other keys are ignored.

        Raises:
            pydantic.ValidationError: If a field is missing or blank
        """
        return cls.model_validate({key: values[key] for key in ("name", "address") if key in values})
