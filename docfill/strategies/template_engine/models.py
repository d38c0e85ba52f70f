"""Template engine domain models.

Pydantic models describing templates, shared by the pipeline, the API
layer and the operator scripts.
"""

from pydantic import BaseModel, Field


class TemplateInspection(BaseModel):
    """Placeholders discovered in a stored template."""

    name: str = Field(description="Template filename in the store")
    tags: list[str] = Field(description="Placeholders exactly as spelled in the template")
    canonical_tags: list[str] = Field(description="Sorted canonical field names")
    legacy_tags: list[str] = Field(
        default_factory=list,
        description="Tags that use a legacy UPPER_SNAKE spelling",
    )

    @property
    def needs_repair(self) -> bool:
        return bool(self.legacy_tags)
