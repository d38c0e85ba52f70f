"""Template inspection API routes.

Read-only views of the template store. Nothing here writes templates.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from docfill.api.deps import get_pipeline
from docfill.api.documents import status_for
from docfill.api.schemas import TemplateListResponse, TemplateTagsResponse
from docfill.interfaces.template import TemplateError
from docfill.pipeline import RenderPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> TemplateListResponse:
    names = pipeline.store.list_templates()
    return TemplateListResponse(templates=names, total=len(names))


@router.get("/{name}/tags", response_model=TemplateTagsResponse)
async def template_tags(
    name: str,
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> TemplateTagsResponse:
    """List a template's placeholders and flag legacy spellings."""
    try:
        inspection = pipeline.inspect(name)
    except TemplateError as e:
        logger.warning(f"Template inspection failed for {name}: {e.detail}")
        raise HTTPException(status_code=status_for(e.kind), detail=e.detail) from e

    return TemplateTagsResponse(
        name=inspection.name,
        tags=inspection.tags,
        canonical_tags=inspection.canonical_tags,
        legacy_tags=inspection.legacy_tags,
        needs_repair=inspection.needs_repair,
    )
