"""Document generation API routes.

Handles single-document generation, multi-template bundles and
validation-only checks. Routes are thin: every decision is made by the
render pipeline and mapped onto HTTP here.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, Response

from docfill.api.deps import get_correlation_id, get_pipeline
from docfill.api.schemas import (
    BundleRequest,
    ErrorResponse,
    GenerateRequest,
    ValidateRequest,
    ValidationResponse,
)
from docfill.interfaces.template import TemplateError
from docfill.pipeline import PipelineResult, RenderPipeline
from docfill.strategies.template_engine.validator import example_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

STATUS_BY_KIND: dict[str, int] = {
    "invalid_record": status.HTTP_400_BAD_REQUEST,
    "template_not_found": status.HTTP_404_NOT_FOUND,
    "validation_incomplete": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "malformed_template": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "bind_retry_exhausted": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "all_conversion_strategies_failed": status.HTTP_502_BAD_GATEWAY,
}


def status_for(kind: str | None) -> int:
    return STATUS_BY_KIND.get(kind or "", status.HTTP_500_INTERNAL_SERVER_ERROR)


def _failure_response(result: PipelineResult) -> JSONResponse:
    body = result.diagnostics()
    if result.error_kind == "validation_incomplete":
        body["requiredPlaceholders"] = sorted(result.example_payload or {})
        body["message"] = result.error_detail
    return JSONResponse(
        status_code=status_for(result.error_kind),
        content=body,
        headers={"X-Correlation-ID": result.correlation_id},
    )


def _artifact_headers(filename: str, correlation_id: str) -> dict[str, str]:
    return {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "X-Correlation-ID": correlation_id,
    }


@router.post(
    "/generate",
    status_code=status.HTTP_200_OK,
    responses={
        404: {"model": ErrorResponse},
        422: {"description": "Strict validation failed; body lists missing placeholders"},
        500: {"model": ErrorResponse},
    },
)
async def generate_document(
    request: GenerateRequest,
    pipeline: RenderPipeline = Depends(get_pipeline),
    correlation_id: str = Depends(get_correlation_id),
) -> Response:
    """Fill a template with the submitted fields and return the document.

    The body is the converted PDF when a converter succeeded, otherwise
    the filled document in its original format. X-Conversion-Mode tells
    which strategy produced it.

    Args:
        request: Template name, field data and optional validation mode.
        pipeline: Render pipeline.
        correlation_id: Request correlation id.

    Returns:
        The artifact bytes, or a JSON error body.
    """
    result = await pipeline.run(
        request.template,
        request.data,
        mode=request.mode,
        correlation_id=correlation_id,
    )
    if not result.ok:
        return _failure_response(result)

    headers = _artifact_headers(result.filename, result.correlation_id)
    headers["X-Conversion-Mode"] = result.mode
    headers["X-Missing-Tags"] = ",".join(result.missing)
    return Response(content=result.content, media_type=result.media_type, headers=headers)


@router.post("/bundle", status_code=status.HTTP_200_OK)
async def generate_bundle(
    request: BundleRequest,
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> Response:
    """Fill several templates with one record and return them as a ZIP."""
    bundle = await pipeline.run_bundle(request.templates, request.data, mode=request.mode)

    if not bundle.ok:
        kinds = {m.error_kind for m in bundle.members}
        code = status_for(kinds.pop()) if len(kinds) == 1 else status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(
            status_code=code,
            content={"ok": False, "error": "bundle_failed", **bundle.manifest()},
            headers={"X-Correlation-ID": bundle.correlation_id},
        )

    return Response(
        content=bundle.content,
        media_type="application/zip",
        headers=_artifact_headers(bundle.filename, bundle.correlation_id),
    )


@router.post("/validate", response_model=ValidationResponse)
async def validate_document(
    request: ValidateRequest,
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> ValidationResponse:
    """Report which placeholders the submitted record leaves unfilled."""
    try:
        report = pipeline.check(request.template, request.data)
    except TemplateError as e:
        logger.warning(f"Validation request failed: {e.kind}: {e.detail}")
        raise HTTPException(status_code=status_for(e.kind), detail=e.detail) from e

    return ValidationResponse(
        template=request.template or "",
        complete=report.complete,
        required_placeholders=list(report.tags),
        missing=list(report.missing),
        example_payload=example_payload(report.tags),
    )
