"""API request and response schemas.

Pydantic v2 models for API serialization/deserialization.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AssembleForm(BaseModel):
    """Body of an assembly request, posted as JSON or as a form."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    guide_id: str | None = Field(default=None, description="Guide whose templates are assembled")
    file_data_url: str | None = Field(
        default=None,
        description="Location of the guide files, used when guideId is absent",
    )
    template_id: str | None = Field(
        default=None,
        description="Render only this text template",
    )
    answers: str | dict[str, Any] | None = Field(
        default=None,
        description="Answers as a JSON-encoded object or an object",
    )
    guide_title: str | None = Field(default=None, description="Used for the download filename")
    header: str | None = None
    footer: str | None = None
    hide_header_on_first_page: bool = False
    hide_footer_on_first_page: bool = False

    @field_validator("hide_header_on_first_page", "hide_footer_on_first_page", mode="before")
    @classmethod
    def blank_is_false(cls, v: Any) -> Any:
        """Treat missing or blank form values as false."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        return v


class ErrorResponse(BaseModel):
    """Error body returned by the assembly endpoints."""

    ok: bool = False
    error: str = Field(description="Human readable error message")
