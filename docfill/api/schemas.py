"""API request and response schemas.

Pydantic v2 models for API serialization/deserialization. JSON bodies use
camelCase keys, which is what the declaration form posts; snake_case is
accepted on input as well.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================


class GenerateRequest(CamelModel):
    """Request body for single document generation."""

    template: str | None = Field(
        default=None,
        description="Template filename; the configured default when omitted.",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Field record; legacy UPPER_SNAKE keys are accepted.",
    )
    mode: Literal["strict", "lenient"] | None = Field(
        default=None,
        description="Validation policy override.",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "template": "CommonCarryDeclaration.docx",
                "data": {
                    "fullName": "Jane Doe",
                    "witness1Name": "Alice",
                    "witness1Email": "alice@example.com",
                    "witness2Name": "Bob",
                    "witness2Email": "bob@example.com",
                },
            }
        },
    )


class BundleRequest(CamelModel):
    """Request body for multi-template generation."""

    templates: list[str] = Field(min_length=1, description="Template filenames to render")
    data: dict[str, Any] = Field(default_factory=dict)
    mode: Literal["strict", "lenient"] | None = None


class ValidateRequest(CamelModel):
    """Request body for validation-only checks."""

    template: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Response Schemas
# =============================================================================


class ValidationResponse(CamelModel):
    """Result of checking a record against a template."""

    template: str
    complete: bool
    required_placeholders: list[str]
    missing: list[str]
    example_payload: dict[str, str]


class TemplateListResponse(CamelModel):
    """Templates available in the store."""

    templates: list[str]
    total: int


class TemplateTagsResponse(CamelModel):
    """Placeholders found in one template."""

    name: str
    tags: list[str]
    canonical_tags: list[str]
    legacy_tags: list[str]
    needs_repair: bool


class ErrorResponse(CamelModel):
    """Standard error response."""

    ok: bool = False
    error: str = Field(description="Stable error kind")
    detail: str | None = None
    correlation_id: str | None = None


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    service: str
    version: str
    checks: dict[str, Any] = Field(default_factory=dict)
