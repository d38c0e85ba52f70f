"""Render pipeline.

Sequences template lookup, placeholder scanning, normalization, validation,
binding and conversion for one request, and always returns a structured
result instead of raising.
"""

import asyncio
import io
import json
import logging
import uuid
import zipfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docfill.conversion import ConversionOrchestrator
from docfill.interfaces.converter import StrategyAttempt, media_type_for
from docfill.interfaces.metrics import BaseMetricsStore
from docfill.interfaces.template import (
    BaseTemplateBinder,
    BaseTemplateStore,
    TemplateError,
    ValidationIncomplete,
    ValidationMode,
    ValidationReport,
)
from docfill.strategies.template_engine.models import TemplateInspection
from docfill.strategies.template_engine.normalizer import (
    is_legacy_tag,
    normalize_record,
    normalize_tag,
)
from docfill.strategies.template_engine.scanner import scan_tags
from docfill.strategies.template_engine.validator import require_complete, validate

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "internal_error"
INVALID_RECORD = "invalid_record"


def new_correlation_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PipelineResult:
    """Structured result of one pipeline invocation.

    Attributes:
        ok: Whether an artifact was produced.
        correlation_id: Token minted for this invocation.
        template: Template identifier that was requested.
        content: Artifact bytes (converted or original format).
        format: Artifact format, e.g. "pdf" or "docx".
        mode: Strategy that produced the artifact.
        tags_found: Placeholders found in the template, as spelled there.
        missing: Canonical tags that were filled with the default.
        attempts: Conversion strategy diagnostics.
        error_kind: Stable error kind when ok is False.
        error_detail: Human-readable failure detail.
        example_payload: Corrective payload for validation failures.
    """

    ok: bool
    correlation_id: str
    template: str
    content: bytes = b""
    format: str | None = None
    mode: str | None = None
    tags_found: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    attempts: tuple[StrategyAttempt, ...] = ()
    error_kind: str | None = None
    error_detail: str | None = None
    example_payload: dict[str, str] | None = None

    @property
    def media_type(self) -> str:
        return media_type_for(self.format or "")

    @property
    def filename(self) -> str | None:
        if not self.ok or not self.format:
            return None
        return f"{Path(self.template).stem}.{self.format}"

    def diagnostics(self) -> dict[str, Any]:
        """JSON-serializable view of everything except the artifact bytes."""
        data: dict[str, Any] = {
            "ok": self.ok,
            "correlationId": self.correlation_id,
            "template": self.template,
            "mode": self.mode,
            "format": self.format,
            "filename": self.filename,
            "tagsFound": list(self.tags_found),
            "missing": list(self.missing),
            "attempts": [
                {
                    "strategy": a.strategy,
                    "ok": a.ok,
                    "skipped": a.skipped,
                    "detail": a.detail,
                    "elapsed": round(a.elapsed, 3),
                }
                for a in self.attempts
            ],
        }
        if not self.ok:
            data["error"] = self.error_kind
            data["detail"] = self.error_detail
        if self.example_payload is not None:
            data["examplePayload"] = self.example_payload
        return data


@dataclass(frozen=True)
class BundleResult:
    """Result of rendering several templates into one ZIP archive."""

    ok: bool
    correlation_id: str
    content: bytes = b""
    members: list[PipelineResult] = field(default_factory=list)

    @property
    def filename(self) -> str:
        return "generated-documents.zip"

    def manifest(self) -> dict[str, Any]:
        return {
            "correlationId": self.correlation_id,
            "documents": [m.diagnostics() for m in self.members],
        }


class RenderPipeline:
    """Template-to-document pipeline with tiered conversion fallback.

    Stateless between invocations: each run mints its own correlation id
    and the template store is only ever read.
    """

    def __init__(
        self,
        store: BaseTemplateStore,
        binder: BaseTemplateBinder,
        orchestrator: ConversionOrchestrator,
        metrics: BaseMetricsStore | None = None,
        validation_mode: ValidationMode | str = ValidationMode.LENIENT,
        default_template: str | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Read-only template store.
            binder: Data binding strategy.
            orchestrator: Conversion strategy chain.
            metrics: Optional counters, called once per invocation.
            validation_mode: Default policy when a run does not choose one.
            default_template: Template used when no identifier is given.
        """
        self._store = store
        self._binder = binder
        self._orchestrator = orchestrator
        self._metrics = metrics
        self._validation_mode = ValidationMode(validation_mode)
        self._default_template = default_template

    @property
    def orchestrator(self) -> ConversionOrchestrator:
        return self._orchestrator

    @property
    def store(self) -> BaseTemplateStore:
        return self._store

    def _resolve_template_id(self, template_id: str | None) -> str:
        return template_id or self._default_template or ""

    async def run(
        self,
        template_id: str | None,
        record: Mapping[str, Any] | None,
        *,
        mode: ValidationMode | str | None = None,
        correlation_id: str | None = None,
    ) -> PipelineResult:
        """Render and convert one document.

        Args:
            template_id: Template filename; the default template when empty.
            record: Flat field record; legacy key spellings are accepted.
            mode: Validation policy override ("strict" or "lenient").
            correlation_id: Pre-minted token, e.g. from a request header.

        Returns:
            A PipelineResult; never raises for request-level problems.
        """
        correlation_id = correlation_id or new_correlation_id()
        template_id = self._resolve_template_id(template_id)

        try:
            result = await self._run(template_id, record, mode, correlation_id)
        except ValidationIncomplete as e:
            logger.info(f"[{correlation_id}] Rejected incomplete record: missing {e.missing}")
            result = PipelineResult(
                ok=False,
                correlation_id=correlation_id,
                template=template_id,
                tags_found=tuple(e.tags),
                missing=tuple(e.missing),
                error_kind=e.kind,
                error_detail=e.detail,
                example_payload=e.example_payload,
            )
        except TemplateError as e:
            logger.warning(f"[{correlation_id}] {e.kind}: {e.detail}")
            result = self._failure(template_id, correlation_id, e.kind, e.detail)
        except Exception as e:
            logger.error(f"[{correlation_id}] Pipeline crashed: {e}", exc_info=True)
            result = self._failure(
                template_id, correlation_id, INTERNAL_ERROR, f"{type(e).__name__}: {e}"
            )

        self._record(result)
        return result

    async def _run(
        self,
        template_id: str,
        record: Mapping[str, Any] | None,
        mode: ValidationMode | str | None,
        correlation_id: str,
    ) -> PipelineResult:
        if record is None:
            record = {}
        if not isinstance(record, Mapping):
            return self._failure(
                template_id,
                correlation_id,
                INVALID_RECORD,
                f"Field record must be a mapping, got {type(record).__name__}",
            )

        validation_mode = ValidationMode(mode) if mode else self._validation_mode
        logger.info(
            f"[{correlation_id}] Generating {template_id} "
            f"({len(record)} field(s), {validation_mode.value})"
        )

        template = self._store.load(template_id)
        tags = scan_tags(template)
        canonical_record = normalize_record(record)

        if validation_mode is ValidationMode.STRICT:
            require_complete(tags, canonical_record)
        else:
            report = validate(tags, canonical_record)
            if report.missing:
                logger.info(
                    f"[{correlation_id}] Proceeding with defaults for {list(report.missing)}"
                )

        render = await self._binder.bind(template, tags, canonical_record)
        if not render.ok:
            raise render.error

        outcome = await self._orchestrator.convert(
            render.content, filename=template_id, correlation_id=correlation_id
        )
        found = tuple(sorted(tags))

        if not outcome.ok:
            return PipelineResult(
                ok=False,
                correlation_id=correlation_id,
                template=template_id,
                tags_found=found,
                missing=render.missing,
                attempts=outcome.attempts,
                error_kind=outcome.error.kind,
                error_detail=outcome.error.detail,
            )

        logger.info(
            f"[{correlation_id}] Generated {template_id} via {outcome.mode} "
            f"({len(render.missing)} field(s) defaulted)"
        )
        return PipelineResult(
            ok=True,
            correlation_id=correlation_id,
            template=template_id,
            content=outcome.content,
            format=outcome.format,
            mode=outcome.mode,
            tags_found=found,
            missing=render.missing,
            attempts=outcome.attempts,
        )

    @staticmethod
    def _failure(template_id: str, correlation_id: str, kind: str, detail: str) -> PipelineResult:
        return PipelineResult(
            ok=False,
            correlation_id=correlation_id,
            template=template_id,
            error_kind=kind,
            error_detail=detail,
        )

    def _record(self, result: PipelineResult) -> None:
        if self._metrics is None:
            return
        try:
            if result.ok:
                self._metrics.record_generation(result.mode or "unknown")
            else:
                self._metrics.record_failure(result.error_kind or INTERNAL_ERROR)
        except Exception as e:
            logger.warning(f"[{result.correlation_id}] Metrics update failed: {e}")

    async def run_bundle(
        self,
        template_ids: Sequence[str],
        record: Mapping[str, Any] | None,
        *,
        mode: ValidationMode | str | None = None,
    ) -> BundleResult:
        """Render several templates and pack the artifacts into one ZIP.

        Each template runs as its own invocation with its own correlation
        id. The archive also holds a manifest.json with every member's
        diagnostics. The bundle fails only if every member failed.
        """
        correlation_id = new_correlation_id()
        logger.info(f"[{correlation_id}] Bundle of {len(template_ids)} template(s)")

        members = list(
            await asyncio.gather(
                *(
                    self.run(name, record, mode=mode, correlation_id=f"{correlation_id}-{i}")
                    for i, name in enumerate(template_ids)
                )
            )
        )

        buffer = io.BytesIO()
        used_names: set[str] = set()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for member in members:
                if not member.ok:
                    continue
                name = member.filename or f"{member.correlation_id}.bin"
                stem, suffix = Path(name).stem, Path(name).suffix
                counter = 1
                while name in used_names:
                    counter += 1
                    name = f"{stem}-{counter}{suffix}"
                used_names.add(name)
                archive.writestr(name, member.content)

            bundle = BundleResult(
                ok=any(m.ok for m in members),
                correlation_id=correlation_id,
                members=members,
            )
            archive.writestr("manifest.json", json.dumps(bundle.manifest(), indent=2))

        return BundleResult(
            ok=bundle.ok,
            correlation_id=correlation_id,
            content=buffer.getvalue(),
            members=members,
        )

    def inspect(self, template_id: str | None) -> TemplateInspection:
        """Describe the placeholders of a stored template.

        Raises:
            TemplateNotFound: If the template does not exist.
            MalformedTemplate: If it cannot be read.
        """
        template_id = self._resolve_template_id(template_id)
        tags = scan_tags(self._store.load(template_id))
        return TemplateInspection(
            name=template_id,
            tags=sorted(tags),
            canonical_tags=sorted({normalize_tag(t) for t in tags}),
            legacy_tags=sorted(t for t in tags if is_legacy_tag(t)),
        )

    def check(self, template_id: str | None, record: Mapping[str, Any]) -> ValidationReport:
        """Run only the Validation Gate for a template and record.

        Raises:
            TemplateNotFound: If the template does not exist.
            MalformedTemplate: If it cannot be read.
        """
        template_id = self._resolve_template_id(template_id)
        tags = scan_tags(self._store.load(template_id))
        return validate(tags, normalize_record(record))

    async def self_test(self) -> dict[str, Any]:
        """Check the default template renders and report strategy availability.

        No conversion is attempted, so the remote quota is never spent.
        """
        report: dict[str, Any] = {
            "template": None,
            "render": None,
            "strategies": {s.name: s.available for s in self._orchestrator.strategies},
        }
        template_id = self._resolve_template_id(None)

        try:
            template = self._store.load(template_id)
            tags = scan_tags(template)
            report["template"] = f"{template_id}: {len(tags)} placeholder(s)"
        except TemplateError as e:
            report["template"] = f"error: {e.detail}"
            return report

        sample = {normalize_tag(t): "Test value" for t in tags}
        render = await self._binder.bind(template, tags, sample)
        report["render"] = "ok" if render.ok else f"error: {render.error.detail}"
        return report
